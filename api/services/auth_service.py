import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from crud.crud_signups import get_signup_by_email, get_signup_by_login, update_password_hash
from errors import Forbidden, NotFound, OtpExpired, Unauthorized, ValidationError
from models.signup import SignupStatus, UserSignup
from security import (
    OtpCode,
    PASSWORD_POLICY_MESSAGE,
    hash_password,
    is_valid_password,
    issue_otp,
    validate_otp,
    verify_password,
)
from utils.email import Mailer

logger = logging.getLogger(__name__)


@dataclass
class LoginChallenge:
    signup: UserSignup
    login: str
    otp: OtpCode


def _can_log_in(signup: UserSignup) -> bool:
    is_verified = signup.email_verified_at is not None or signup.has_account
    return is_verified and signup.status == SignupStatus.accounts_created.value


def start_login(db: Session, mailer: Mailer, email, password, now_ms: Optional[int] = None) -> LoginChallenge:
    """
    Check the password and email a one-time code.

    No session is issued here; the caller stores the challenge in the OTP
    cookies and the session only follows a correct code.
    """
    if not email or not password:
        raise ValidationError("Email and password are required.")

    signup = get_signup_by_email(db, email)
    if signup is None:
        raise NotFound("Account not found.")

    if not _can_log_in(signup):
        raise Forbidden("Please verify your email before logging in.")

    if not verify_password(password, signup.password_hash):
        logger.info(f"Password mismatch for {email}")
        raise Unauthorized("Invalid email or password.")

    login = signup.primary_login
    if not login:
        raise ValidationError("No MT5 account linked to this email yet.")

    otp = issue_otp(now_ms)
    mailer.send_otp_email(signup.email, otp.code)
    logger.info(f"Login OTP issued for {email}")

    return LoginChallenge(signup=signup, login=login, otp=otp)


def complete_login(challenge: Optional[dict], code, now_ms: Optional[int] = None) -> str:
    """
    Validate a submitted code against the OTP cookie values; returns the
    login captured at password time. Raises OtpExpired / OtpMismatch.
    """
    if not code or not isinstance(code, str):
        raise ValidationError("OTP code is required.")
    if challenge is None:
        raise OtpExpired("OTP expired or missing.")

    validate_otp(code, challenge["otp_hash"], challenge["otp_expires"], now_ms)
    logger.info(f"Login OTP verified for {challenge['otp_email']}")
    return challenge["otp_login"]


def change_password(db: Session, login: str, current_password, new_password) -> UserSignup:
    if not current_password or not new_password:
        raise ValidationError("Both current and new passwords are required.")
    if not is_valid_password(new_password):
        raise ValidationError(PASSWORD_POLICY_MESSAGE)

    signup = get_signup_by_login(db, login)
    if signup is None:
        raise NotFound("Account not found.")

    if not verify_password(current_password, signup.password_hash):
        raise Unauthorized("Current password is incorrect.")

    signup = update_password_hash(db, signup, hash_password(new_password))
    logger.info(f"Password updated for signup {signup.id}")
    return signup
