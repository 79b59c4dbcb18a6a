import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from crud.crud_signups import get_signup_by_email, upsert_pending, mark_verified_and_provisioned, mark_failed
from errors import Conflict, EmailDeliveryError, RemoteProvisioningError, ValidationError
from models.signup import FINALIZED_STATUSES, UserSignup
from mt5api.client import ManagerClient
from mt5api.constants import AccountKind
from security import (
    PASSWORD_POLICY_MESSAGE,
    decode_password_from_link,
    encode_password_for_link,
    hash_password,
    is_valid_email,
    is_valid_password,
    issue_verification_token,
    validate_verification_token,
)
from services.provisioning_service import create_trading_account, seed_demo_balance
from utils.email import Mailer

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    signup: UserSignup
    already_verified: bool
    demo_login: Optional[str]


def build_verification_link(origin: str, locale: str, token: str, password: str) -> str:
    query = urlencode({"token": token, "pwd": encode_password_for_link(password)})
    return f"{origin.rstrip('/')}/{locale}/verify-email?{query}"


def register(db: Session, mailer: Mailer, email, password, origin: str, locale: Optional[str] = None,
             now: Optional[datetime] = None) -> UserSignup:
    """
    Start (or restart) a signup and email the verification link.

    The link carries a base64url copy of the password; it is needed once,
    to open the trading account at verification, and is not stored.
    """
    if not email or not password:
        raise ValidationError("Email and password are required.")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address.")
    if not is_valid_password(password):
        raise ValidationError(PASSWORD_POLICY_MESSAGE)

    existing = get_signup_by_email(db, email)
    if existing is not None and existing.status in FINALIZED_STATUSES:
        raise Conflict("Email is already registered.")

    token, expires_at = issue_verification_token(now)
    signup = upsert_pending(db, email, hash_password(password), token, expires_at)
    logger.info(f"Pending signup {signup.id} written for {email}")

    link = build_verification_link(origin, locale or "en", token, password)
    mailer.send_verification_email(email, link)

    return signup


def verify(db: Session, platform: ManagerClient, mailer: Mailer, token, password_encoded,
           demo_initial_balance: float, now: Optional[datetime] = None) -> VerificationResult:
    """
    Consume a verification token: open the demo account, seed it and link it.

    Re-visiting an already verified link succeeds without touching anything.
    A rejected demo account creation marks the signup failed (terminal).
    """
    if not token or not isinstance(token, str):
        raise ValidationError("Verification token is required.")
    if not password_encoded or not isinstance(password_encoded, str):
        raise ValidationError("Password is required for provisioning.")

    plain_password = decode_password_from_link(password_encoded)
    signup = validate_verification_token(db, token, now)

    if signup.email_verified_at is not None:
        logger.info(f"Signup {signup.id} already verified, nothing to do")
        return VerificationResult(signup=signup, already_verified=True, demo_login=signup.demo_login)

    try:
        demo_login = create_trading_account(platform, AccountKind.demo, signup.email, plain_password)
    except RemoteProvisioningError:
        mark_failed(db, signup)
        raise RemoteProvisioningError("Failed to create demo account.")

    seed_demo_balance(platform, demo_login, demo_initial_balance)
    signup = mark_verified_and_provisioned(db, signup, demo_login)
    logger.info(f"Signup {signup.id} verified with demo account {demo_login}")

    try:
        mailer.send_accounts_email(signup.email, demo_login, None)
    except EmailDeliveryError:
        logger.error(f"Failed to send accounts email to {signup.email}")

    return VerificationResult(signup=signup, already_verified=False, demo_login=demo_login)
