"""
Withdrawal and deposit requests.

A withdrawal touches two systems: the platform balance and our
withdrawal_request table. The local row is written first (status
"processing") and its id is stamped on the remote deduction, so a crash
between the two steps leaves a row that reconcile_withdrawals() can
resolve against the platform's deal mirror.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crud import crud_funds
from errors import Conflict, PlatformUnavailable, SettlementError, ValidationError
from models.funds import WithdrawalRequest, DepositReceipt
from models.mt5 import Mt5Deal
from mt5api.client import ManagerClient
from mt5api.constants import BalanceComment
from services.provisioning_service import adjust_balance

logger = logging.getLogger(__name__)

USDT_PAYMENT_METHOD = "crypto_usdt"
USDT_NETWORK = "TRC-20"


def submit_withdrawal(db: Session, platform: ManagerClient, login: str, amount, bank_name, account_number,
                      account_name, min_amount: float, idempotency_key: Optional[str] = None) -> WithdrawalRequest:
    if not amount or not bank_name or not account_number or not account_name:
        raise ValidationError("All fields are required")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Minimum withdrawal is ${min_amount:g}")
    if amount != amount or amount < min_amount:
        raise ValidationError(f"Minimum withdrawal is ${min_amount:g}")

    if idempotency_key:
        previous = crud_funds.get_withdrawal_by_key(db, idempotency_key)
        if previous is not None:
            if previous.login != login:
                raise Conflict("Idempotency key already used.")
            logger.info(f"Replayed withdrawal {previous.id} for key {idempotency_key}")
            return previous

    account = platform.get_account(login)
    if account.balance < amount:
        raise ValidationError(f"Insufficient balance. Available: ${account.balance:.2f}")

    try:
        withdrawal = crud_funds.create_withdrawal(
            db,
            login=login,
            client_name=account_name,
            amount=amount,
            bank_name=bank_name,
            bank_number=account_number,
            balance=account.balance,
            credit=account.credit,
            equity=account.equity,
            margin=account.margin,
            marginfree=account.margin_free,
            marginlevel=account.margin_level,
            payment_method="Online Bank Transfer",
            idempotency_key=idempotency_key,
        )
    except IntegrityError:
        db.rollback()
        raise Conflict("Idempotency key already used.")

    try:
        ticket = adjust_balance(platform, login, -amount, withdrawal.settlement_tag)
    except SettlementError:
        # Platform refused; nothing was deducted, so drop the local row
        crud_funds.delete_withdrawal(db, withdrawal)
        raise SettlementError("Withdrawal failed on trading server")
    except PlatformUnavailable:
        logger.error(f"Withdrawal {withdrawal.id} outcome unknown; left processing for reconciliation")
        raise

    try:
        withdrawal = crud_funds.mark_withdrawal_settled(db, withdrawal, ticket)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Withdrawal {withdrawal.id} deducted (ticket {ticket}) but not recorded; left processing")
        raise

    logger.info(f"Withdrawal {withdrawal.id} for {login}: {amount} deducted, ticket {ticket}")
    return withdrawal


def cancel_withdrawal(db: Session, platform: ManagerClient, login: str, request_id) -> WithdrawalRequest:
    """Refund a pending withdrawal owned by `login` and mark it cancelled."""
    if not request_id:
        raise ValidationError("Missing ID")

    try:
        withdraw_id = int(request_id)
    except (TypeError, ValueError):
        raise ValidationError("Cannot cancel this request")
    if not crud_funds.claim_for_cancel(db, withdraw_id, login):
        raise ValidationError("Cannot cancel this request")

    withdrawal = crud_funds.get_withdrawal(db, withdraw_id)
    db.refresh(withdrawal)

    try:
        refund_ticket = adjust_balance(platform, login, withdrawal.amount, BalanceComment.CANCEL_REFUND)
    except SettlementError:
        crud_funds.release_cancel_claim(db, withdrawal)
        raise SettlementError("Refund failed on trading server")
    except PlatformUnavailable:
        logger.error(f"Withdrawal {withdrawal.id} refund outcome unknown; left cancelling for manual review")
        raise

    withdrawal = crud_funds.mark_withdrawal_cancelled(db, withdrawal, refund_ticket)
    logger.info(f"Withdrawal {withdrawal.id} cancelled, refund ticket {refund_ticket}")
    return withdrawal


def withdrawal_history(db: Session, login: str):
    """Latest requests, newest first, each with a client-facing reference (oldest = W1000001)."""
    rows = crud_funds.list_withdrawals(db, login)
    # Refs are numbered within the returned window, so they shift once a
    # login has more requests than HISTORY_LIMIT
    total = len(rows)
    history = []
    for index, row in enumerate(rows):
        history.append({
            "Withdraw_ID": row.id,
            "Amount": row.amount,
            "BankName": row.bank_name,
            "BankNumber": row.bank_number,
            "Status": row.status,
            "Time": row.time.isoformat() if row.time else None,
            "ref": f"W{1000001 + (total - 1 - index):07d}",
        })
    return history


def reconcile_withdrawals(db: Session, grace: timedelta, now: Optional[datetime] = None) -> dict:
    """
    Resolve withdrawals stuck in "processing" past the grace period.

    The remote deduction carries the row's settlement tag as its comment;
    if the platform's deal mirror has it the row becomes pending with that
    ticket, otherwise nothing was deducted and the row is failed.
    """
    now = now or datetime.utcnow()
    settled = failed = 0

    for withdrawal in crud_funds.list_stale_processing(db, now - grace):
        deal = db.query(Mt5Deal).filter(
            Mt5Deal.login == withdrawal.login,
            Mt5Deal.comment == withdrawal.settlement_tag,
        ).first()

        if deal is not None:
            crud_funds.mark_withdrawal_settled(db, withdrawal, str(deal.deal))
            settled += 1
            logger.info(f"Reconciled withdrawal {withdrawal.id} with deal {deal.deal}")
        else:
            crud_funds.mark_withdrawal_failed(db, withdrawal, "No matching deduction found on trading server")
            failed += 1
            logger.warning(f"Withdrawal {withdrawal.id} has no matching deduction; marked failed")

    return {"settled": settled, "failed": failed}


def _upload_code() -> str:
    letters = "".join(secrets.choice(string.ascii_uppercase) for _ in range(3))
    digits = "".join(secrets.choice(string.digits) for _ in range(18))
    return letters + digits


def submit_deposit(db: Session, login: str, amount, payment_method, usdt_wallet: str) -> DepositReceipt:
    if not amount or not payment_method:
        raise ValidationError("Missing required fields")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Invalid amount")
    if amount != amount or amount <= 0:
        raise ValidationError("Invalid amount")

    is_usdt = payment_method == USDT_PAYMENT_METHOD
    deposit = crud_funds.create_deposit(
        db,
        login=login,
        upload_code=_upload_code(),
        amount=amount,
        payment_method=payment_method,
        usdt_type=USDT_NETWORK if is_usdt else None,
        wallet_address=usdt_wallet if is_usdt else None,
    )
    logger.info(f"Deposit request {deposit.upload_code} for {login}: {amount} via {payment_method}")
    return deposit


def deposit_history(db: Session, login: str):
    return [
        {
            "Receipt_ID": row.id,
            "UploadCode": row.upload_code,
            "Deal": row.deal,
            "Amount": row.amount,
            "Status": row.status,
            "Time": row.time.isoformat() if row.time else None,
            "PaymentMethod": row.payment_method,
            "USDTType": row.usdt_type,
            "WalletAddress": row.wallet_address,
            "Comment": row.comment,
        }
        for row in crud_funds.list_deposits(db, login)
    ]

