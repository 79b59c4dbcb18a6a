from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import build_session_factory
from main import create_app
from middleware.rate_limiter import RateLimitMiddleware
from models.funds import WithdrawalRequest, WithdrawalStatus
from scheduler import SchedulerService, register_reconciliation_job
from scheduler.jobs import RECONCILE_JOB_ID


def test_status(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "scheduler": "off"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}


def test_malformed_body_is_a_400(client):
    response = client.post("/api/auth/login", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Invalid request."


def test_unexpected_errors_render_generic_500(app, platform, monkeypatch):
    def explode(params):
        raise RuntimeError("boom")
    monkeypatch.setattr(platform, "_check_password", explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/user/check_password", params={"login": "1", "password": "x"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_auth_endpoints_are_rate_limited(settings, engine, platform, mailer):
    settings.RATE_LIMIT_ENABLED = True
    settings.AUTH_RATE_LIMIT = 2
    app = create_app(settings, engine=engine, platform=platform, mailer=mailer)

    with TestClient(app) as client:
        codes = [client.post("/api/auth/login", json={}).status_code for _ in range(3)]
        assert codes == [400, 400, 429]
        assert client.post("/api/auth/login", json={}).json()["success"] is False

        # Limits are per endpoint, and non-auth endpoints use the wider default
        assert client.post("/api/auth/register", json={}).status_code == 400
        assert all(client.get("/api/status").status_code == 200 for _ in range(5))


def test_reconciliation_job_registration(engine):
    scheduler = SchedulerService(build_session_factory(engine))
    register_reconciliation_job(scheduler, Settings(RECONCILE_INTERVAL_MINUTES=7))

    job = scheduler.scheduler.get_job(RECONCILE_JOB_ID)
    assert job is not None
    assert job.trigger.interval == timedelta(minutes=7)
    assert scheduler.running is False


def test_run_job_uses_a_fresh_session(db, engine):
    db.add(WithdrawalRequest(login="DEMO123", client_name="A", amount=60, bank_name="KBank",
                             bank_number="1", status=WithdrawalStatus.processing.value))
    db.commit()

    seen = []

    def job(session):
        seen.append(session)
        return session.query(WithdrawalRequest).count()

    scheduler = SchedulerService(build_session_factory(engine))
    assert scheduler.run_job(job) == 1
    assert seen[0] is not db


def test_scheduler_runs_with_the_app(settings, engine, platform, mailer):
    settings.RECONCILE_INTERVAL_MINUTES = 5
    app = create_app(settings, engine=engine, platform=platform, mailer=mailer)

    with TestClient(app) as client:
        assert client.get("/api/status").json()["scheduler"] == "running"
        assert app.state.scheduler.scheduler.get_job(RECONCILE_JOB_ID) is not None

    assert app.state.scheduler.running is False


def test_check_password_is_rate_limited(settings, engine, platform, mailer):
    settings.RATE_LIMIT_ENABLED = True
    settings.AUTH_RATE_LIMIT = 2
    app = create_app(settings, engine=engine, platform=platform, mailer=mailer)
    params = {"login": "DEMO123", "password": "Guess1!x"}

    with TestClient(app) as client:
        codes = [client.get("/api/user/check_password", params=params).status_code for _ in range(3)]

    assert codes == [200, 200, 429]
    assert len(platform.calls_to("/user/check_password")) == 2


def test_rate_limiter_state_stays_bounded():
    limiter = RateLimitMiddleware(None, auth_limit=5, default_limit=300, window_seconds=60)
    start = datetime.utcnow()

    for i in range(500):
        limiter.hit("10.0.0.1", f"/api/nope/{i}", now=start)
    limiter.hit("10.0.0.1", "/api/auth/login", now=start)
    assert sorted(limiter.request_counts["10.0.0.1"]) == ["*", "/api/auth/login"]

    # Once the window has passed, idle clients are dropped entirely
    assert limiter.hit("10.0.0.2", "/api/status", now=start + timedelta(seconds=61)) is None
    assert list(limiter.request_counts) == ["10.0.0.2"]


def test_startup_requires_secret_key(settings, engine, platform, mailer):
    settings.AUTH_SECRET_KEY = None
    app = create_app(settings, engine=engine, platform=platform, mailer=mailer)

    with pytest.raises(RuntimeError, match="AUTH_SECRET_KEY"):
        with TestClient(app):
            pass
