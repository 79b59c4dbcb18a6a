import pytest
import requests

from errors import PlatformUnavailable, RemoteProvisioningError, SettlementError, TradingPlatformError
from mt5api import AccountKind, AccountSnapshot, BalanceTicket, CreatedAccount, ManagerClient, PasswordCheck


def test_snapshot_reads_either_casing():
    capitalised = AccountSnapshot.from_payload({"Login": 5001, "Balance": "100.5", "MarginFree": "90"})
    lowercase = AccountSnapshot.from_payload({"login": "5001", "balance": 100.5, "margin_free": 90})
    assert capitalised == lowercase
    assert capitalised.login == "5001"
    assert capitalised.balance == 100.5
    assert capitalised.margin_free == 90.0


def test_snapshot_defaults_and_rendering():
    snapshot = AccountSnapshot.from_payload({"Balance": None, "Equity": "oops"}, login="42")
    assert snapshot.login == "42"
    assert snapshot.balance == 0.0
    assert snapshot.equity == 0.0
    assert snapshot.currency_digits == 2

    answer = AccountSnapshot(login="42", balance=10, margin_level=1234.567).to_answer()
    assert answer["Login"] == "42"
    assert answer["Balance"] == "10.00"
    assert answer["MarginLevel"] == "1234.57"
    assert answer["CurrencyDigits"] == "2"


def test_created_account_requires_success_and_login():
    assert CreatedAccount.from_payload({"retcode": "0 Done", "answer": {"Login": 777}}, "demo").login == "777"
    assert CreatedAccount.from_payload({"retcode": "0 Done", "answer": {}}, "demo") is None
    assert CreatedAccount.from_payload({"retcode": "3 Error", "answer": {"Login": 777}}, "demo") is None
    assert CreatedAccount.from_payload({}, "demo") is None


def test_balance_ticket_envelopes():
    from_data = BalanceTicket.from_payload({"success": True, "data": {"ticket": 9}}, "1", 5.0, "x")
    from_answer = BalanceTicket.from_payload({"retcode": "0 Done", "answer": {"Deal": 9}}, "1", 5.0, "x")
    assert from_data.ticket == from_answer.ticket == "9"
    assert BalanceTicket.from_payload({"success": True, "data": {}}, "1", 5.0, "x") is None
    assert BalanceTicket.from_payload({"success": False, "data": {"ticket": 9}}, "1", 5.0, "x") is None


def test_password_check():
    assert PasswordCheck.from_payload({"success": True, "valid": True}).valid is True
    assert PasswordCheck.from_payload({"success": True, "valid": False}).valid is False
    assert PasswordCheck.from_payload({}).success is False


class _Response:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(payload)

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


@pytest.fixture
def manager(monkeypatch):
    client = ManagerClient("http://mt5.test/api/", timeout=3)
    sent = []

    def respond(payload):
        def request(method, url, params=None, timeout=None):
            sent.append({"method": method, "url": url, "params": params, "timeout": timeout})
            if isinstance(payload, requests.RequestException):
                raise payload
            return _Response(payload)
        monkeypatch.setattr(client.session, "request", request)

    client.respond = respond
    client.sent = sent
    return client


def test_create_account_request(manager):
    manager.respond({"retcode": "0 Done", "answer": {"Login": 1001}})
    account = manager.create_account(AccountKind.demo, "a@x.com", "Abcdef1!")

    assert account.login == "1001"
    request = manager.sent[-1]
    assert request["url"] == "http://mt5.test/api/user/add"
    assert request["timeout"] == 3
    assert request["params"] == {
        "group": "demo\\itrade",
        "name": "N/A",
        "pass_main": "Abcdef1!",
        "pass_investor": "Abcdef1!",
        "email": "a@x.com",
    }


def test_create_account_rejected(manager):
    manager.respond({"retcode": "3 Error"})
    with pytest.raises(RemoteProvisioningError):
        manager.create_account(AccountKind.real, "a@x.com", "Abcdef1!")


def test_transport_failure_is_platform_unavailable(manager):
    manager.respond(requests.ConnectionError("refused"))
    with pytest.raises(PlatformUnavailable):
        manager.get_account("1001")


def test_non_json_response_is_treated_as_empty(manager):
    manager.respond(ValueError("not json"))
    with pytest.raises(TradingPlatformError):
        manager.get_account("1001")


def test_trade_balance(manager):
    manager.respond({"success": True, "data": {"ticket": 555}})
    ticket = manager.trade_balance("1001", -40.0, "demo")
    assert ticket.ticket == "555"
    assert manager.sent[-1]["params"] == {"login": "1001", "type": 2, "balance": -40.0, "comment": "demo"}

    manager.respond({"success": False})
    with pytest.raises(SettlementError):
        manager.trade_balance("1001", -40.0, "demo")
