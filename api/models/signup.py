from sqlalchemy import Column, Integer, String, DateTime, Boolean
from datetime import datetime
from database import Base
import enum


class SignupStatus(str, enum.Enum):
    pending = "pending"
    verified = "verified"                  # Legacy: verified but status never advanced
    accounts_created = "accounts_created"
    failed = "failed"                      # Terminal until requeued by support


# Statuses that block a fresh registration for the same email
FINALIZED_STATUSES = (SignupStatus.verified.value, SignupStatus.accounts_created.value)


class UserSignup(Base):
    __tablename__ = "user_signups"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    verification_token = Column(String(128), index=True, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    status = Column(String(32), nullable=False, default=SignupStatus.pending.value)
    email_verified_at = Column(DateTime, nullable=True)

    # Trading platform logins linked to this signup
    demo_login = Column(String(32), index=True, nullable=True)
    real_login = Column(String(32), index=True, nullable=True)
    account_password_synced = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def primary_login(self):
        return self.real_login or self.demo_login

    @property
    def has_account(self) -> bool:
        return bool(self.real_login or self.demo_login)

    def __repr__(self):
        return f"<UserSignup id={self.id} email={self.email} status={self.status}>"
