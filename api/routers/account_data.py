"""
Read-only account views backed by the platform's mirror tables, plus
the two password passthroughs to the manager API.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from crud import crud_mt5
from dependencies import get_db, get_platform, get_codec, get_current_login
from mt5api.constants import PasswordType
from mt5api.models import ANSWER_KEYS, AccountSnapshot
from security import SessionCodec
from utils.cookies import read_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["Account Data"])

INVALID_PARAMETERS = {"retcode": "3001 Invalid parameters"}


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _volume(value):
    return (value or 0) / crud_mt5.VOLUME_DIVISOR


@router.get("/user/account/get")
def get_account(request: Request, login: Optional[str] = Query(None), db: Session = Depends(get_db),
                codec: SessionCodec = Depends(get_codec)):
    login = login or read_session(request, codec)
    if not login:
        return JSONResponse(status_code=401, content={
            "retcode": "1 Error", "answer": "Missing login parameter and no session found",
        })

    user = crud_mt5.get_mt5_user(db, login)
    if user is None:
        return JSONResponse(status_code=404, content={"retcode": "2 Error", "answer": "User not found"})

    row = {field: getattr(user, field) for field in ANSWER_KEYS}
    snapshot = AccountSnapshot.from_payload(row, login=login)
    return {"retcode": "0 Done", "answer": snapshot.to_answer()}


@router.get("/profile")
def profile(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    user = crud_mt5.get_mt5_user(db, login)
    if user is None:
        return JSONResponse(status_code=404, content={"success": False, "message": "User not found"})
    return {
        "success": True,
        "user": {
            "Login": user.login,
            "Registration": _iso(user.registration),
            "Phone": user.phone or "",
            "Email": user.email,
            "Name": user.name,
        },
    }


@router.get("/deals/history")
def deals_history(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    deals = [
        {
            "deal": deal.deal,
            "login": deal.login,
            "time": _iso(deal.time),
            "symbol": deal.symbol,
            "profit": deal.profit,
            "priceposition": deal.priceposition,
            "pricesl": deal.pricesl,
            "pricetp": deal.pricetp,
            "marketbid": deal.marketbid,
            "marketask": deal.marketask,
            "volume": _volume(deal.volume),
        }
        for deal in crud_mt5.list_closed_deals(db, login)
    ]
    return {"success": True, "deals": deals}


@router.get("/deals/positions")
def deals_positions(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    positions = [
        {
            "position": position.position,
            "login": position.login,
            "timecreate": _iso(position.timecreate),
            "symbol": position.symbol,
            "profit": position.profit,
            "storage": position.storage,
            "priceopen": position.priceopen,
            "pricesl": position.pricesl,
            "pricetp": position.pricetp,
            "pricecurrent": position.pricecurrent,
            "volume": _volume(position.volume),
        }
        for position in crud_mt5.list_positions(db, login)
    ]
    return {"success": True, "positions": positions}


@router.get("/balance-history")
def balance_history(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    return [
        {
            "date": datetime.fromtimestamp(point.datetime, tz=timezone.utc).strftime("%Y-%m-%d"),
            "balance": float(point.balance or 0),
            "timestamp": point.datetime,
        }
        for point in crud_mt5.list_daily_balances(db, login)
    ]


# Reports validity only; sessions come from the OTP flow
@router.get("/user/check_password")
def check_password(login: Optional[str] = Query(None), password: Optional[str] = Query(None),
                   type: str = Query(PasswordType.MAIN), platform=Depends(get_platform)):
    if not login or not password:
        return JSONResponse(status_code=400, content=INVALID_PARAMETERS)

    result = platform.check_password(login, password, type)
    return {"success": result.success, "valid": result.valid}


@router.get("/user/change_password")
def change_password(password: Optional[str] = Query(None), type: str = Query(PasswordType.MAIN),
                    login: str = Depends(get_current_login), platform=Depends(get_platform)):
    if not password:
        return JSONResponse(status_code=400, content=INVALID_PARAMETERS)

    data = platform.change_password(login, password, type)
    logger.info(f"Trading password ({type}) changed for {login}")
    return data
