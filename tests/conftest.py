"""Shared fixtures: an app wired to a throwaway SQLite file and fake remotes.

The fakes subclass the real ManagerClient and Mailer and only replace the
transport (`get` and `send`), so response parsing and email templates are
exercised by every test.
"""
from datetime import datetime
from urllib.parse import parse_qs, urlparse
import re

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import build_engine, build_session_factory
from errors import EmailDeliveryError, PlatformUnavailable
from main import create_app
from models.signup import UserSignup, SignupStatus
from mt5api.client import ManagerClient
from security import SessionCodec, hash_password
from utils.cookies import SESSION_COOKIE
from utils.email import Mailer

TEST_SECRET = "test-secret"
PASSWORD = "Abcdef1!"


class FakePlatform(ManagerClient):
    """In-memory stand-in for the manager API."""

    def __init__(self):
        super().__init__("http://mt5.test")
        self.calls = []
        self.balances = {}
        self.passwords = {}
        self.next_demo = 123
        self.next_real = 900
        self.next_ticket = 5000
        self.fail_create = False
        self.reject_balance = False
        self.unavailable = False

    def get(self, path, params=None):
        params = dict(params or {})
        self.calls.append((path, params))
        handlers = {
            "/user/add": self._add_user,
            "/user/account/get": self._get_account,
            "/user/check_password": self._check_password,
            "/user/change_password": self._change_password,
            "/trade/balance": self._trade_balance,
        }
        return handlers[path](params)

    def calls_to(self, path):
        return [params for called, params in self.calls if called == path]

    def _add_user(self, params):
        if self.unavailable:
            raise PlatformUnavailable()
        if self.fail_create:
            return {"retcode": "3 Error", "answer": {}}
        if params["group"].startswith("demo"):
            login = f"DEMO{self.next_demo}"
            self.next_demo += 1
        else:
            login = f"REAL{self.next_real}"
            self.next_real += 1
        self.balances[login] = 0.0
        self.passwords[login] = params["pass_main"]
        return {"retcode": "0 Done", "answer": {"Login": login}}

    def _get_account(self, params):
        login = params["login"]
        if login not in self.balances:
            return {"retcode": "2 Error", "answer": "User not found"}
        balance = self.balances[login]
        return {
            "retcode": "0 Done",
            "answer": {
                "Login": login,
                "Balance": f"{balance:.2f}",
                "Credit": "0.00",
                "Equity": f"{balance:.2f}",
                "Margin": "0.00",
                "MarginFree": f"{balance:.2f}",
                "MarginLevel": "0.00",
            },
        }

    def _check_password(self, params):
        return {"success": True, "valid": self.passwords.get(params["login"]) == params["password"]}

    def _change_password(self, params):
        self.passwords[params["login"]] = params["password"]
        return {"retcode": "0 Done"}

    def _trade_balance(self, params):
        if self.unavailable:
            raise PlatformUnavailable()
        if self.reject_balance:
            return {"success": False, "retcode": "10019 No money"}
        login = params["login"]
        self.balances[login] = round(self.balances.get(login, 0.0) + float(params["balance"]), 2)
        ticket = self.next_ticket
        self.next_ticket += 1
        return {"success": True, "data": {"ticket": ticket}}


class FakeMailer(Mailer):
    """Records outgoing messages instead of sending them."""

    def __init__(self):
        super().__init__(from_email="noreply@portal.test")
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, html, text=None):
        if self.fail:
            raise EmailDeliveryError()
        self.sent.append({"to": to_email, "subject": subject, "html": html, "text": text or subject})

    def last(self, subject):
        matching = [message for message in self.sent if message["subject"] == subject]
        assert matching, f"no '{subject}' email sent"
        return matching[-1]

    def verification_params(self):
        link = self.last("Verify your email")["text"].split()[-1]
        query = parse_qs(urlparse(link).query)
        return query["token"][0], query["pwd"][0]

    def otp_code(self):
        return re.search(r"code is: (\d{6})", self.last("Your login code")["text"]).group(1)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'portal.db'}",
        AUTH_SECRET_KEY=TEST_SECRET,
        PUBLIC_BASE_URL="http://portal.test",
        RATE_LIMIT_ENABLED=False,
        RECONCILE_INTERVAL_MINUTES=0,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    yield engine
    engine.dispose()


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def app(settings, engine, platform, mailer):
    return create_app(settings, engine=engine, platform=platform, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def db(client, engine):
    """A session on the app's database (tables exist once the client has started)."""
    session = build_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def codec():
    return SessionCodec(TEST_SECRET)


@pytest.fixture
def make_signup(db):
    def _make_signup(email="a@x.com", demo_login="DEMO123", real_login=None, password=PASSWORD,
                     status=SignupStatus.accounts_created.value, verified=True):
        signup = UserSignup(
            email=email,
            password_hash=hash_password(password),
            status=status,
            email_verified_at=datetime.utcnow() if verified else None,
            demo_login=demo_login,
            real_login=real_login,
            account_password_synced=True,
        )
        db.add(signup)
        db.commit()
        db.refresh(signup)
        return signup
    return _make_signup


@pytest.fixture
def sign_in(client, codec):
    """Give the test client a session for `login`, as a completed OTP login would."""
    def _sign_in(login):
        # http.cookiejar files cookies from a dotless host under "<host>.local"
        client.cookies.set(SESSION_COOKIE, codec.encode(SESSION_COOKIE, login, 3600), domain="testserver.local")
    return _sign_in


@pytest.fixture
def session_login(client, codec):
    """The login bound to the client's current session cookie, or None."""
    def _session_login():
        return codec.decode(SESSION_COOKIE, client.cookies.get(SESSION_COOKIE))
    return _session_login
