import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from crud.crud_signups import attach_real_login, get_signup_by_login
from errors import Conflict, EmailDeliveryError, Forbidden, NotFound, ValidationError
from models.signup import UserSignup
from mt5api.client import ManagerClient
from mt5api.constants import AccountKind, BalanceComment
from services.provisioning_service import adjust_balance, create_trading_account
from utils.email import Mailer

logger = logging.getLogger(__name__)


@dataclass
class LinkedAccounts:
    signup: UserSignup
    current_login: str

    @property
    def current_type(self) -> Optional[str]:
        if self.signup.real_login == self.current_login:
            return AccountKind.real.value
        if self.signup.demo_login == self.current_login:
            return AccountKind.demo.value
        return None


def list_accounts(db: Session, login: str) -> LinkedAccounts:
    signup = get_signup_by_login(db, login)
    if signup is None:
        raise NotFound("No linked accounts found.")
    return LinkedAccounts(signup=signup, current_login=login)


def switch_account(db: Session, current_login: str, target_login) -> str:
    """Move the session to another login linked to the same signup."""
    if not target_login:
        raise ValidationError("Login is required.")
    target_login = str(target_login)

    signup = get_signup_by_login(db, current_login)
    if signup is None or target_login not in (signup.real_login, signup.demo_login):
        raise Forbidden("Account not linked to this user.")
    return target_login


def create_live_account(db: Session, platform: ManagerClient, mailer: Mailer, login: str, password) -> UserSignup:
    """
    Open the live account for the signup behind `login` and link it.

    Only one live account per signup: an existing one, or a concurrent
    request that links first, ends in Conflict.
    """
    if not password or not isinstance(password, str):
        raise ValidationError("Password is required.")

    signup = get_signup_by_login(db, login)
    if signup is None:
        raise NotFound("Account not found.")
    if signup.real_login:
        raise Conflict("Live account already exists.")

    real_login = create_trading_account(platform, AccountKind.real, signup.email, password)
    try:
        signup = attach_real_login(db, signup.id, real_login)
    except Conflict:
        logger.error(f"Live account {real_login} created for {signup.email} but another request linked first")
        raise
    logger.info(f"Live account {real_login} linked to signup {signup.id}")

    try:
        mailer.send_accounts_email(signup.email, signup.demo_login, real_login)
    except EmailDeliveryError:
        logger.error(f"Failed to send accounts email (live) to {signup.email}")

    return signup


def set_demo_balance(db: Session, platform: ManagerClient, login: str, target) -> float:
    """
    Reset a demo account to `target` by sending the difference from the
    current balance. Returns the new balance.
    """
    try:
        amount = float(target)
    except (TypeError, ValueError):
        raise ValidationError("Invalid balance amount.")
    if not math.isfinite(amount):
        raise ValidationError("Invalid balance amount.")

    signup = get_signup_by_login(db, login)
    if signup is None or signup.demo_login != login:
        raise Forbidden("Only demo accounts can set balance.")

    current = platform.get_account(login).balance
    delta = round(amount - current, 2)
    if delta == 0:
        return amount

    adjust_balance(platform, login, delta, BalanceComment.DEMO_RESET)
    logger.info(f"Demo balance for {login} set to {amount} (delta {delta})")
    return amount
