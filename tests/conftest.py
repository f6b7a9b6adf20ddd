"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database (via app lifespan)
  • recording email / SMS transports
  • an HS256 identity authority and a fake payment gateway
  • a frozen clock that tests advance explicitly

Service-level tests use the ``database`` fixture instead, which opens the
same schema directly inside the test's event loop.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from twiller.db import Database
from twiller.dependencies import Services, assemble_services
from twiller.main import create_app
from twiller.services.admission import AdmissionGate
from tests.mocks.models import IST_10_15
from tests.mocks.services import (
    FakeIdentityAuthority,
    FakePaymentGateway,
    FrozenClock,
    RecordingEmailTransport,
    RecordingSmsTransport,
)


# ── Collaborators ──────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(IST_10_15)


@pytest.fixture()
def email_transport() -> RecordingEmailTransport:
    return RecordingEmailTransport()


@pytest.fixture()
def sms_transport() -> RecordingSmsTransport:
    return RecordingSmsTransport()


@pytest.fixture()
def identity() -> FakeIdentityAuthority:
    return FakeIdentityAuthority()


@pytest.fixture()
def payments() -> FakePaymentGateway:
    return FakePaymentGateway()


# ── Services ───────────────────────────────────────────────────────────────


@pytest.fixture()
def services(tmp_path, clock, email_transport, sms_transport, identity, payments) -> Services:
    """Fully wired Services; the database is opened by whoever runs it."""
    return assemble_services(
        db=Database(str(tmp_path / "test.db")),
        email=email_transport,
        sms=sms_transport,
        identity=identity,
        payments=payments,
        gate=AdmissionGate(enforced=True),
        clock=clock,
        sweep_interval=3600,
    )


@pytest.fixture()
async def database(services):
    """Open the services' database in the current event loop."""
    await services.db.connect()
    yield services.db
    await services.db.close()


# ── HTTP ───────────────────────────────────────────────────────────────────


@pytest.fixture()
def client(services, monkeypatch) -> TestClient:
    """
    TestClient running the full lifespan against the test services.

    Rate limiting is disabled; see test_rate_limit.py for the limits.
    """
    from twiller.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    app = create_app(services)
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
def auth_headers(identity):
    """Factory: bearer headers for *email*."""

    def _headers(email: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {identity.issue_token(email)}"}

    return _headers


@pytest.fixture()
def register(client):
    """Factory: register a user through the API and return the JSON body."""

    def _register(**fields) -> dict:
        resp = client.post("/register", json=fields)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _register
