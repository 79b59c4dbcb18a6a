from sqlalchemy import Column, Integer, String, Float, DateTime
from datetime import datetime
from database import Base
import enum


class WithdrawalStatus(str, enum.Enum):
    processing = "processing"   # Row written, remote deduction not yet confirmed
    pending = "pending"         # Deducted remotely, awaiting bank transfer
    cancelling = "cancelling"   # Claimed by a cancel request, refund in flight
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"     # Refunded by client
    failed = "failed"           # Reconciliation found no matching deduction


class WithdrawalRequest(Base):
    __tablename__ = "withdrawal_request"

    id = Column("Withdraw_ID", Integer, primary_key=True, index=True)
    login = Column("Login", String(32), index=True, nullable=False)
    client_name = Column("ClientName", String(255), nullable=False)
    amount = Column("Amount", Float, nullable=False)
    bank_name = Column("BankName", String(255), nullable=False)
    bank_number = Column("BankNumber", String(64), nullable=False)
    status = Column("Status", String(32), nullable=False, default=WithdrawalStatus.processing.value)

    # Account snapshot at submission
    balance = Column(Float, nullable=True)
    credit = Column(Float, nullable=True)
    equity = Column(Float, nullable=True)
    margin = Column(Float, nullable=True)
    marginfree = Column(Float, nullable=True)
    marginlevel = Column(Float, nullable=True)

    payment_method = Column("PaymentMethod", String(64), default="Online Bank Transfer")
    comment = Column("Comment", String(255), nullable=True)
    deal = Column(String(64), nullable=True)                    # Settlement ticket
    cancel_deal = Column("cancelwithdrawdeal", String(64), nullable=True)  # Refund ticket
    idempotency_key = Column(String(64), unique=True, nullable=True)
    time = Column("Time", DateTime, default=datetime.utcnow, nullable=False)

    @property
    def settlement_tag(self) -> str:
        """Comment attached to the remote deduction, used for reconciliation."""
        return f"WD{self.id}"


class DepositReceipt(Base):
    __tablename__ = "deposit_receipt_upload"

    id = Column("Receipt_ID", Integer, primary_key=True, index=True)
    login = Column("Login", String(32), index=True, nullable=False)
    upload_code = Column("UploadCode", String(32), unique=True, nullable=False)
    status = Column("Status", String(32), nullable=False, default="pending")
    amount = Column("Amount", Float, nullable=False)
    payment_method = Column("PaymentMethod", String(64), nullable=False)
    usdt_type = Column("USDTType", String(16), nullable=True)
    wallet_address = Column("WalletAddress", String(128), nullable=True)
    deal = Column("Deal", String(64), nullable=True)
    comment = Column("Comment", String(255), default="")
    time = Column("Time", DateTime, default=datetime.utcnow, nullable=False)
