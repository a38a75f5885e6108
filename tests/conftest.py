import random
from decimal import Decimal

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from betguard.core.database import get_db, init_database, make_engine
from betguard.core.game import OutcomeSource, get_outcome_source
from betguard.core.security import create_access_token
from betguard.main import app
from betguard.models.role import UserRole
from betguard.models.user import User
from betguard.services import ledger
from betguard.services.ledger import PendingAudit, PendingTransaction
from betguard.services.oracle import OracleClient, get_oracle


class ScriptedSource(OutcomeSource):
    """Outcome source that returns queued values in order."""

    def __init__(self, *values):
        super().__init__(random.Random(0))
        self.values = list(values)

    def push(self, *values):
        self.values.extend(values)

    def draw(self, space):
        assert self.values, "scripted source ran out of outcomes"
        value = self.values.pop(0)
        assert value in space, f"{value!r} is not in the outcome space"
        return value


class FakeResponse:
    def __init__(self, status_code=200, payload=None, body_error=False):
        self.status_code = status_code
        self._payload = payload
        self._body_error = body_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._body_error:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records calls and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def completion(content):
    return FakeResponse(200, {"choices": [{"message": {"content": content}}]})


def fake_oracle(*responses, api_key="test-key"):
    return OracleClient(url="https://oracle.test/v1/chat", api_key=api_key, session=FakeSession(*responses))


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'betguard-test.db'}")
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(username="player", balance=Decimal("0"), admin=False, deposit_limit=Decimal("1000")):
        user = User(
            username=username,
            password="not-a-real-hash",
            balance=0,
            deposit_limit=deposit_limit,
            play_time_limit=4,
            roles=[UserRole(role="admin" if admin else "player")],
        )
        db.add(user)
        db.commit()
        if balance:
            # seed through the ledger so the cached balance matches the log
            ledger.commit(
                db,
                user.id,
                Decimal(balance),
                [PendingTransaction("deposit", Decimal(balance))],
                [PendingAudit("seed deposit")],
            )
        return user

    return _make


@pytest.fixture
def source():
    return ScriptedSource()


@pytest.fixture
def oracle():
    # unconfigured by default: every call is OracleUnavailable
    return OracleClient(api_key="", session=FakeSession())


@pytest.fixture
def client(session_factory, source, oracle):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_outcome_source] = lambda: source
    app.dependency_overrides[get_oracle] = lambda: oracle
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}

    return _headers
