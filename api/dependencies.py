"""
Request-scoped access to the long-lived service handles.

create_app() builds the handles once and parks them on app.state; these
dependencies hand them to route functions. Tests override nothing here,
they pass their own handles to create_app().
"""
from fastapi import Request, Depends
from sqlalchemy.orm import Session

from errors import Unauthorized
from mt5api.client import ManagerClient
from security import SessionCodec
from utils.cookies import read_session
from utils.email import Mailer


### 🚀 Get Database Session
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request):
    return request.app.state.settings

def get_platform(request: Request) -> ManagerClient:
    return request.app.state.platform

def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer

def get_codec(request: Request) -> SessionCodec:
    return request.app.state.codec


### 🚀 Get Current Login
def get_current_login(request: Request, codec: SessionCodec = Depends(get_codec)) -> str:
    """The trading login bound to the session cookie. Raises Unauthorized."""
    login = read_session(request, codec)
    if not login:
        raise Unauthorized()
    return login
