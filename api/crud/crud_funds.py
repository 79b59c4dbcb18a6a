from datetime import datetime
from sqlalchemy.orm import Session

from models.funds import WithdrawalRequest, WithdrawalStatus, DepositReceipt

HISTORY_LIMIT = 50


### 🚀 Withdrawals
def get_withdrawal(db: Session, withdraw_id: int):
    return db.query(WithdrawalRequest).filter(WithdrawalRequest.id == withdraw_id).first()

def get_withdrawal_by_key(db: Session, idempotency_key: str):
    return db.query(WithdrawalRequest).filter(WithdrawalRequest.idempotency_key == idempotency_key).first()

def list_withdrawals(db: Session, login: str, limit: int = HISTORY_LIMIT):
    return (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.login == login)
        .order_by(WithdrawalRequest.time.desc(), WithdrawalRequest.id.desc())
        .limit(limit)
        .all()
    )

def list_stale_processing(db: Session, older_than: datetime):
    return (
        db.query(WithdrawalRequest)
        .filter(
            WithdrawalRequest.status == WithdrawalStatus.processing.value,
            WithdrawalRequest.time < older_than,
        )
        .all()
    )

def create_withdrawal(db: Session, **fields) -> WithdrawalRequest:
    withdrawal = WithdrawalRequest(status=WithdrawalStatus.processing.value, **fields)
    db.add(withdrawal)
    db.commit()
    db.refresh(withdrawal)
    return withdrawal

def mark_withdrawal_settled(db: Session, withdrawal: WithdrawalRequest, ticket: str) -> WithdrawalRequest:
    withdrawal.status = WithdrawalStatus.pending.value
    withdrawal.deal = str(ticket)
    withdrawal.comment = "Auto-deducted on submit - awaiting bank transfer"
    db.commit()
    db.refresh(withdrawal)
    return withdrawal

def mark_withdrawal_failed(db: Session, withdrawal: WithdrawalRequest, comment: str) -> WithdrawalRequest:
    withdrawal.status = WithdrawalStatus.failed.value
    withdrawal.comment = comment
    db.commit()
    db.refresh(withdrawal)
    return withdrawal

def claim_for_cancel(db: Session, withdraw_id: int, login: str) -> bool:
    """
    Move a pending withdrawal owned by `login` to cancelling. Only one
    caller can win: the update is conditional on the row still being pending.
    """
    updated = db.query(WithdrawalRequest).filter(
        WithdrawalRequest.id == withdraw_id,
        WithdrawalRequest.login == login,
        WithdrawalRequest.status == WithdrawalStatus.pending.value,
    ).update(
        {WithdrawalRequest.status: WithdrawalStatus.cancelling.value},
        synchronize_session=False,
    )
    db.commit()
    return updated == 1

def release_cancel_claim(db: Session, withdrawal: WithdrawalRequest) -> WithdrawalRequest:
    withdrawal.status = WithdrawalStatus.pending.value
    db.commit()
    db.refresh(withdrawal)
    return withdrawal

def mark_withdrawal_cancelled(db: Session, withdrawal: WithdrawalRequest, refund_ticket: str) -> WithdrawalRequest:
    withdrawal.status = WithdrawalStatus.cancelled.value
    withdrawal.cancel_deal = str(refund_ticket)
    withdrawal.comment = "Cancelled by client - amount refunded"
    db.commit()
    db.refresh(withdrawal)
    return withdrawal

def delete_withdrawal(db: Session, withdrawal: WithdrawalRequest):
    db.delete(withdrawal)
    db.commit()


### 🚀 Deposits
def create_deposit(db: Session, **fields) -> DepositReceipt:
    deposit = DepositReceipt(status="pending", comment="", **fields)
    db.add(deposit)
    db.commit()
    db.refresh(deposit)
    return deposit

def list_deposits(db: Session, login: str, limit: int = HISTORY_LIMIT):
    return (
        db.query(DepositReceipt)
        .filter(DepositReceipt.login == login)
        .order_by(DepositReceipt.time.desc(), DepositReceipt.id.desc())
        .limit(limit)
        .all()
    )
