from datetime import datetime

import pytest

from models.mt5 import Mt5User, Mt5Deal, Mt5Position, Mt5Daily


@pytest.fixture
def mirror(db):
    db.add(Mt5User(login="DEMO123", name="A Trader", email="a@x.com", phone=None,
                   registration=datetime(2024, 1, 2, 3, 4, 5), balance=1234.5, credit=0,
                   margin=10, margin_free=1224.5, margin_level=12345.0, margin_leverage=100,
                   equity=1234.5))
    db.add_all([
        Mt5Deal(deal=1, login="DEMO123", time=datetime(2024, 1, 1), symbol="XAUUSD", entry=1,
                profit=12.5, volume=10000),
        Mt5Deal(deal=2, login="DEMO123", time=datetime(2024, 1, 3), symbol="EURUSD", entry=1,
                profit=-3, volume=5000),
        Mt5Deal(deal=3, login="DEMO123", time=datetime(2024, 1, 2), symbol="EURUSD", entry=0, volume=5000),
        Mt5Deal(deal=4, login="OTHER1", time=datetime(2024, 1, 2), symbol="EURUSD", entry=1, volume=5000),
    ])
    db.add(Mt5Position(position=7, login="DEMO123", timecreate=datetime(2024, 1, 4), symbol="XAUUSD",
                       profit=3.2, volume=20000))
    db.add_all([
        Mt5Daily(login="DEMO123", datetime=1700006400, balance=1100),
        Mt5Daily(login="DEMO123", datetime=1699920000, balance=1000),
    ])
    db.commit()


def test_account_get_by_login(client, mirror):
    response = client.get("/api/user/account/get", params={"login": "DEMO123"})
    assert response.status_code == 200
    body = response.json()
    assert body["retcode"] == "0 Done"
    answer = body["answer"]
    assert answer["Login"] == "DEMO123"
    assert answer["Balance"] == "1234.50"
    assert answer["MarginFree"] == "1224.50"
    assert answer["MarginLeverage"] == "100.00"
    assert answer["CurrencyDigits"] == "2"


def test_account_get_falls_back_to_session(client, mirror, sign_in):
    assert client.get("/api/user/account/get").status_code == 401

    sign_in("DEMO123")
    response = client.get("/api/user/account/get")
    assert response.json()["answer"]["Equity"] == "1234.50"


def test_account_get_unknown(client, mirror):
    response = client.get("/api/user/account/get", params={"login": "NOPE"})
    assert response.status_code == 404
    assert response.json() == {"retcode": "2 Error", "answer": "User not found"}


def test_profile(client, mirror, sign_in):
    sign_in("DEMO123")
    response = client.get("/api/profile")
    assert response.status_code == 200
    assert response.json()["user"] == {
        "Login": "DEMO123",
        "Registration": "2024-01-02T03:04:05",
        "Phone": "",
        "Email": "a@x.com",
        "Name": "A Trader",
    }


def test_closed_deals_newest_first(client, mirror, sign_in):
    sign_in("DEMO123")
    deals = client.get("/api/deals/history").json()["deals"]
    assert [deal["deal"] for deal in deals] == [2, 1]
    assert deals[0]["volume"] == 0.5
    assert deals[1]["volume"] == 1.0


def test_positions(client, mirror, sign_in):
    sign_in("DEMO123")
    positions = client.get("/api/deals/positions").json()["positions"]
    assert len(positions) == 1
    assert positions[0]["symbol"] == "XAUUSD"
    assert positions[0]["volume"] == 2.0


def test_balance_history_oldest_first(client, mirror, sign_in):
    sign_in("DEMO123")
    response = client.get("/api/balance-history")
    assert response.json() == [
        {"date": "2023-11-14", "balance": 1000.0, "timestamp": 1699920000},
        {"date": "2023-11-15", "balance": 1100.0, "timestamp": 1700006400},
    ]


def test_mirror_views_require_session(client):
    for path in ("/api/profile", "/api/deals/history", "/api/deals/positions", "/api/balance-history"):
        assert client.get(path).status_code == 401, path


def test_check_password_reports_validity_only(client, platform):
    platform.passwords["DEMO123"] = "Abcdef1!"

    response = client.get("/api/user/check_password", params={"login": "DEMO123", "password": "Abcdef1!"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "valid": True}
    assert client.cookies.get("session") is None

    response = client.get("/api/user/check_password", params={"login": "DEMO123", "password": "nope"})
    assert response.json()["valid"] is False

    response = client.get("/api/user/check_password", params={"login": "DEMO123"})
    assert response.status_code == 400
    assert response.json() == {"retcode": "3001 Invalid parameters"}


def test_change_trading_password_uses_session_login(client, platform, sign_in):
    assert client.get("/api/user/change_password", params={"password": "New1!pass"}).status_code == 401

    sign_in("DEMO123")
    response = client.get("/api/user/change_password",
                          params={"login": "SOMEONE_ELSE", "password": "New1!pass", "type": "investor"})
    assert response.status_code == 200
    call = platform.calls_to("/user/change_password")[-1]
    assert call == {"login": "DEMO123", "type": "investor", "password": "New1!pass"}
