import logging

from errors import SettlementError, TradingPlatformError
from mt5api.client import ManagerClient
from mt5api.constants import AccountKind, BalanceComment

logger = logging.getLogger(__name__)


def create_trading_account(platform: ManagerClient, kind: AccountKind, email: str, password: str) -> str:
    """Create a demo or live account and return its login. Raises RemoteProvisioningError."""
    account = platform.create_account(kind, email=email, password=password)
    return account.login


def seed_demo_balance(platform: ManagerClient, login: str, amount: float) -> bool:
    """
    Put the initial balance on a fresh demo account.

    Best effort: the account exists either way, a failure only leaves it at
    zero, so errors are logged and reported through the return value.
    """
    try:
        platform.trade_balance(login, amount, BalanceComment.DEMO_INITIAL)
        return True
    except TradingPlatformError as e:
        logger.error(f"Demo initial deposit failed for {login}: {e}")
        return False


def adjust_balance(platform: ManagerClient, login: str, signed_delta: float, reason_tag: str) -> str:
    """Apply a signed balance delta and return the platform ticket. Raises SettlementError."""
    ticket = platform.trade_balance(login, signed_delta, reason_tag)
    if not ticket.ticket:
        raise SettlementError()
    return ticket.ticket
