from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dependencies import get_db, get_platform, get_current_login
from schemas.accounts import DemoBalanceSchema
from services.account_service import set_demo_balance

router = APIRouter(prefix="/demo", tags=["Demo"])


@router.post("/set_balance")
def set_balance(payload: DemoBalanceSchema, db: Session = Depends(get_db),
                login: str = Depends(get_current_login), platform=Depends(get_platform)):
    new_balance = set_demo_balance(db, platform, login, payload.balance)
    return {"success": True, "newBalance": new_balance}
