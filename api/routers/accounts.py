from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from dependencies import get_db, get_platform, get_mailer, get_codec, get_current_login
from schemas.accounts import CreateRealAccountSchema, SwitchAccountSchema
from security import SessionCodec
from services import account_service
from utils.audit import log_audit_event
from utils.cookies import issue_session

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("/list")
def list_accounts(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    linked = account_service.list_accounts(db, login)
    return {
        "success": True,
        "email": linked.signup.email,
        "real_login": linked.signup.real_login,
        "demo_login": linked.signup.demo_login,
        "status": linked.signup.status,
        "current_login": login,
        "current_type": linked.current_type,
    }


@router.post("/switch")
def switch_account(payload: SwitchAccountSchema, request: Request, db: Session = Depends(get_db),
                   login: str = Depends(get_current_login), codec: SessionCodec = Depends(get_codec)):
    target = account_service.switch_account(db, login, payload.login)
    response = JSONResponse(content={"success": True, "login": target})
    issue_session(response, request, codec, target)
    return response


# live account; session moves to the new login
@router.post("/create-real")
def create_real_account(payload: CreateRealAccountSchema, request: Request, db: Session = Depends(get_db),
                        login: str = Depends(get_current_login), platform=Depends(get_platform),
                        mailer=Depends(get_mailer), codec: SessionCodec = Depends(get_codec)):
    signup = account_service.create_live_account(db, platform, mailer, login, payload.password)
    log_audit_event(db, "live_account_created", signup_id=signup.id, login=signup.real_login, request=request)

    response = JSONResponse(content={
        "success": True,
        "real_login": signup.real_login,
        "demo_login": signup.demo_login,
    })
    issue_session(response, request, codec, signup.real_login)
    return response
