from typing import Optional

from fastapi import APIRouter, Request, Depends, Header
from sqlalchemy.orm import Session

from dependencies import get_db, get_settings, get_platform, get_current_login
from schemas.funds import WithdrawalSchema, CancelWithdrawalSchema, DepositSchema
from services import funds_service
from utils.audit import log_audit_event

router = APIRouter(prefix="/funds", tags=["Funds"])


@router.post("/withdrawal")
def submit_withdrawal(payload: WithdrawalSchema, request: Request, db: Session = Depends(get_db),
                      settings=Depends(get_settings), platform=Depends(get_platform),
                      login: str = Depends(get_current_login),
                      idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key")):
    withdrawal = funds_service.submit_withdrawal(
        db, platform, login,
        amount=payload.amount,
        bank_name=payload.bank_name,
        account_number=payload.account_number,
        account_name=payload.account_name,
        min_amount=settings.MIN_WITHDRAWAL,
        idempotency_key=idempotency_key,
    )
    log_audit_event(db, "withdrawal_requested", login=login, details={
        "withdrawal_id": withdrawal.id, "amount": withdrawal.amount, "deal": withdrawal.deal,
    }, request=request)
    return {"success": True, "requestId": withdrawal.id, "ticket": withdrawal.deal, "status": withdrawal.status}


@router.get("/withdrawal/history")
def withdrawal_history(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    return {"success": True, "data": funds_service.withdrawal_history(db, login)}


# Cancel & refund a pending request
@router.post("/withdrawal/history")
def cancel_withdrawal(payload: CancelWithdrawalSchema, request: Request, db: Session = Depends(get_db),
                      platform=Depends(get_platform), login: str = Depends(get_current_login)):
    withdrawal = funds_service.cancel_withdrawal(db, platform, login, payload.request_id)
    log_audit_event(db, "withdrawal_cancelled", login=login, details={
        "withdrawal_id": withdrawal.id, "refund_ticket": withdrawal.cancel_deal,
    }, request=request)
    return {"success": True, "refundTicket": withdrawal.cancel_deal}


@router.post("/deposit")
def submit_deposit(payload: DepositSchema, db: Session = Depends(get_db), settings=Depends(get_settings),
                   login: str = Depends(get_current_login)):
    deposit = funds_service.submit_deposit(
        db, login,
        amount=payload.amount,
        payment_method=payload.payment_method,
        usdt_wallet=settings.USDT_WALLET_ADDRESS,
    )
    return {"success": True, "uploadCode": deposit.upload_code}


@router.get("/deposit/history")
def deposit_history(db: Session = Depends(get_db), login: str = Depends(get_current_login)):
    return {"success": True, "data": funds_service.deposit_history(db, login)}
