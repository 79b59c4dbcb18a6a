import pytest

from crud.crud_signups import attach_real_login
from database import build_session_factory
from errors import Conflict
from models.signup import UserSignup


def test_list_accounts(client, make_signup, sign_in):
    make_signup(real_login="REAL900")
    sign_in("DEMO123")

    response = client.get("/api/accounts/list")
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "email": "a@x.com",
        "real_login": "REAL900",
        "demo_login": "DEMO123",
        "status": "accounts_created",
        "current_login": "DEMO123",
        "current_type": "demo",
    }


def test_list_accounts_unknown_login(client, sign_in):
    sign_in("GHOST1")
    response = client.get("/api/accounts/list")
    assert response.status_code == 404
    assert response.json()["message"] == "No linked accounts found."


def test_switch_account(client, make_signup, sign_in, session_login):
    make_signup(real_login="REAL900")
    make_signup(email="b@x.com", demo_login="DEMO777")
    sign_in("DEMO123")

    response = client.post("/api/accounts/switch", json={"login": "REAL900"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "login": "REAL900"}
    assert session_login() == "REAL900"

    response = client.post("/api/accounts/switch", json={"login": "DEMO777"})
    assert response.status_code == 403
    assert response.json()["message"] == "Account not linked to this user."
    assert session_login() == "REAL900"

    response = client.post("/api/accounts/switch", json={})
    assert response.status_code == 400


def test_create_live_account(client, db, make_signup, sign_in, platform, mailer, session_login):
    signup = make_signup()
    sign_in("DEMO123")

    response = client.post("/api/accounts/create-real", json={"password": "Live1!pass"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "real_login": "REAL900", "demo_login": "DEMO123"}
    assert session_login() == "REAL900"

    created = platform.calls_to("/user/add")[-1]
    assert created["group"] == "real\\itrade"
    assert created["pass_main"] == "Live1!pass"

    db.expire_all()
    signup = db.get(UserSignup, signup.id)
    assert signup.real_login == "REAL900"
    assert signup.status == "accounts_created"

    summary = mailer.last("Your trading accounts")
    assert "REAL900" in summary["html"]
    assert "Pending KYC approval" not in summary["html"]

    # A second live account is refused before the platform is called
    response = client.post("/api/accounts/create-real", json={"password": "Live1!pass"})
    assert response.status_code == 409
    assert response.json()["message"] == "Live account already exists."
    assert len(platform.calls_to("/user/add")) == 1


def test_create_live_account_guards(client, make_signup, sign_in, platform):
    assert client.post("/api/accounts/create-real", json={"password": "x"}).status_code == 401

    sign_in("GHOST1")
    response = client.post("/api/accounts/create-real", json={"password": "Live1!pass"})
    assert response.status_code == 404

    make_signup()
    sign_in("DEMO123")
    response = client.post("/api/accounts/create-real", json={})
    assert response.status_code == 400
    assert response.json()["message"] == "Password is required."

    platform.fail_create = True
    response = client.post("/api/accounts/create-real", json={"password": "Live1!pass"})
    assert response.status_code == 500
    assert response.json()["message"] == "Failed to create real account."


def test_concurrent_live_account_links_only_once(engine, make_signup):
    signup = make_signup()
    factory = build_session_factory(engine)
    first, second = factory(), factory()
    try:
        # Both requests read the record before either has linked
        assert first.get(UserSignup, signup.id).real_login is None
        assert second.get(UserSignup, signup.id).real_login is None

        winner = attach_real_login(first, signup.id, "REAL900")
        assert winner.real_login == "REAL900"

        with pytest.raises(Conflict):
            attach_real_login(second, signup.id, "REAL901")
    finally:
        first.close()
        second.close()

    check = factory()
    assert check.get(UserSignup, signup.id).real_login == "REAL900"
    check.close()


def test_set_demo_balance(client, make_signup, sign_in, platform):
    make_signup()
    platform.balances["DEMO123"] = 50.0
    sign_in("DEMO123")

    response = client.post("/api/demo/set_balance", json={"balance": "10"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "newBalance": 10}
    assert float(platform.calls_to("/trade/balance")[-1]["balance"]) == -40.0
    assert platform.balances["DEMO123"] == 10.0

    # Already at target: no platform call
    calls = len(platform.calls_to("/trade/balance"))
    response = client.post("/api/demo/set_balance", json={"balance": 10})
    assert response.status_code == 200
    assert len(platform.calls_to("/trade/balance")) == calls


def test_set_demo_balance_guards(client, make_signup, sign_in, platform):
    make_signup(real_login="REAL900")
    platform.balances["REAL900"] = 50.0

    assert client.post("/api/demo/set_balance", json={"balance": 10}).status_code == 401

    sign_in("REAL900")
    response = client.post("/api/demo/set_balance", json={"balance": 10})
    assert response.status_code == 403
    assert response.json()["message"] == "Only demo accounts can set balance."

    sign_in("DEMO123")
    for bad in ("abc", None, "inf"):
        response = client.post("/api/demo/set_balance", json={"balance": bad})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid balance amount."

    assert platform.calls_to("/trade/balance") == []


def test_set_demo_balance_settlement_rejected(client, make_signup, sign_in, platform):
    make_signup()
    platform.balances["DEMO123"] = 50.0
    platform.reject_balance = True
    sign_in("DEMO123")

    response = client.post("/api/demo/set_balance", json={"balance": 10})
    assert response.status_code == 500
    assert response.json()["success"] is False
    assert platform.balances["DEMO123"] == 50.0
