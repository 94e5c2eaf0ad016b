"""
Shared fixtures: an in-memory stand-in for the Supabase query builder and a
TestClient wired to it through FastAPI dependency overrides.
"""

from collections import defaultdict, deque
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_service_supabase, get_supabase
from app.main import app


class FakeResponse:
    def __init__(self, data=None, count=None):
        self.data = data if data is not None else []
        self.count = count


class FakeQuery:
    """Chainable builder; every call is recorded and execute() pops the next queued response"""

    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.calls = []

    @property
    def not_(self):
        return self

    def __getattr__(self, method):
        def chain(*args, **kwargs):
            self.calls.append((method, args, kwargs))
            self.db.calls.append((self.name, method, args, kwargs))
            return self
        return chain

    def execute(self):
        queue = self.db.responses[self.name]
        return queue.popleft() if queue else FakeResponse()


class FakeSupabase:
    def __init__(self):
        self.responses = defaultdict(deque)
        self.calls = []
        self.auth = MagicMock()
        self.storage = MagicMock()

    def queue(self, name, data=None, count=None):
        """Queue a response for table `name` (or "rpc:<function>")"""
        self.responses[name].append(FakeResponse(data, count))
        return self

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        query = FakeQuery(self, f"rpc:{name}")
        self.calls.append((f"rpc:{name}", "rpc", (params,), {}))
        return query

    def called(self, name, method):
        """Arguments of every `method` call made against `name`"""
        return [args for table, m, args, _ in self.calls if table == name and m == method]


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def current_user():
    return {
        "id": "user-1",
        "email": "player@example.com",
        "app_metadata": {},
        "user_metadata": {"name": "Test Player"},
    }


@pytest.fixture
def client(fake_db, current_user):
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    app.dependency_overrides[get_current_user_id] = lambda: current_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(fake_db):
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()
