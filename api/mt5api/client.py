import logging
import requests

from errors import PlatformUnavailable, RemoteProvisioningError, SettlementError, TradingPlatformError
from mt5api.constants import AccountKind, BalanceOperationType, PasswordType
from mt5api.models import AccountSnapshot, BalanceTicket, CreatedAccount, PasswordCheck, answer_of, is_success

logger = logging.getLogger(__name__)


class ManagerClient:
    """
    Client for the trading platform's manager API.

    One instance is created at startup and shared by all requests. No call
    is retried here; callers decide what a failure means.
    """

    def __init__(self, base_url, demo_group="demo\\itrade", real_group="real\\itrade", timeout=15):
        self.base_url = base_url.rstrip("/")
        self.groups = {
            AccountKind.demo: demo_group,
            AccountKind.real: real_group,
        }
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        logger.info(f"ManagerClient initialized: base_url={self.base_url}")

    @classmethod
    def from_settings(cls, settings):
        return cls(
            base_url=settings.MT5_MANAGER_URL,
            demo_group=settings.MT5_DEMO_GROUP,
            real_group=settings.MT5_REAL_GROUP,
            timeout=settings.MT5_TIMEOUT_SECONDS,
        )

    def __repr__(self):
        return f"<ManagerClient base_url={self.base_url}>"

    def close(self):
        self.session.close()

    def _request(self, method, path, params=None) -> dict:
        """General request wrapper. Returns the decoded JSON body ({} if none)."""
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"{method.upper()} {path} failed: {e}")
            raise PlatformUnavailable()

        logger.debug(f"{method.upper()} {path} --> {response.status_code}")
        if not response.ok:
            logger.warning(f"Request error: {response.status_code} - {response.text[:500]}")

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response from {path}: {response.text[:300]}")
            return {}

        return data if isinstance(data, dict) else {"answer": data}

    def get(self, path, params=None) -> dict:
        return self._request("get", path, params=params)

    ### Accounts
    def create_account(self, kind: AccountKind, email: str, password: str, name: str = "N/A") -> CreatedAccount:
        """Create a trading account in the group for `kind`. No retry."""
        group = self.groups[AccountKind(kind)]
        data = self.get("/user/add", params={
            "group": group,
            "name": name,
            "pass_main": password,
            "pass_investor": password,
            "email": email,
        })

        account = CreatedAccount.from_payload(data, group)
        if account is None:
            logger.error(f"Account creation rejected for {email} in {group}: retcode={data.get('retcode')}")
            raise RemoteProvisioningError(f"Failed to create {AccountKind(kind).value} account.")

        logger.info(f"Created {AccountKind(kind).value} account {account.login} for {email}")
        return account

    def get_account(self, login: str) -> AccountSnapshot:
        data = self.get("/user/account/get", params={"login": login})
        if not is_success(data) or not answer_of(data):
            logger.warning(f"Account lookup failed for {login}: retcode={data.get('retcode')}")
            raise TradingPlatformError("Failed to load account.")
        return AccountSnapshot.from_payload(answer_of(data), login=login)

    def check_password(self, login: str, password: str, password_type: str = PasswordType.MAIN) -> PasswordCheck:
        data = self.get("/user/check_password", params={
            "login": login,
            "password": password,
            "type": password_type,
        })
        return PasswordCheck.from_payload(data)

    def change_password(self, login: str, password: str, password_type: str = PasswordType.MAIN) -> dict:
        data = self.get("/user/change_password", params={
            "login": login,
            "type": password_type,
            "password": password,
        })
        if not is_success(data):
            logger.warning(f"Password change rejected for {login}: retcode={data.get('retcode')}")
            raise TradingPlatformError("Failed to change trading password.")
        return data

    ### Balance
    def trade_balance(self, login: str, amount: float, comment: str) -> BalanceTicket:
        """Apply a signed balance correction; returns the settlement ticket."""
        data = self.get("/trade/balance", params={
            "login": login,
            "type": BalanceOperationType.BALANCE,
            "balance": amount,
            "comment": comment,
        })

        ticket = BalanceTicket.from_payload(data, login=login, amount=amount, comment=comment)
        if ticket is None:
            logger.error(f"Balance operation rejected: login={login} amount={amount} comment={comment} response={data}")
            raise SettlementError()

        logger.info(f"Balance operation {ticket.ticket}: login={login} amount={amount} comment={comment}")
        return ticket
