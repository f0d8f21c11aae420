"""Shared fixtures: an in-memory Supabase stand-in and a scripted AI provider."""

import copy
import os
import uuid
from datetime import datetime

import pytest

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("AI_PROVIDER", "disabled")

from welltrack.db.supabase import DatabaseService  # noqa: E402
from welltrack.models.health import HealthMetricsCreate  # noqa: E402
from welltrack.models.user import UserCreate  # noqa: E402
from welltrack.services.ai_service import AIProvider, AIProviderError  # noqa: E402
from welltrack.services.insights import HealthAI  # noqa: E402


def _normalize(value):
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Subset of the postgrest query builder, evaluated against in-memory rows."""

    def __init__(self, rows):
        self.rows = rows
        self.action = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.limit_count = None

    # Actions
    def select(self, *columns, **kwargs):
        self.action = "select"
        return self

    def insert(self, data):
        self.action = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.action = "update"
        self.payload = data
        return self

    def upsert(self, data, on_conflict=None, **kwargs):
        self.action = "upsert"
        self.payload = data
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters
    def _compare(self, column, value, op):
        value = _normalize(value)

        def check(row):
            current = row.get(column)
            if current is None:
                return False
            return op(current, value)

        self.filters.append(check)
        return self

    def eq(self, column, value):
        value = _normalize(value)
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        value = _normalize(value)
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def gt(self, column, value):
        return self._compare(column, value, lambda a, b: a > b)

    def gte(self, column, value):
        return self._compare(column, value, lambda a, b: a >= b)

    def lt(self, column, value):
        return self._compare(column, value, lambda a, b: a < b)

    def lte(self, column, value):
        return self._compare(column, value, lambda a, b: a <= b)

    def in_(self, column, values):
        values = [_normalize(v) for v in values]
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False, **kwargs):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    # Execution
    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def _new_row(self, data):
        row = {k: _normalize(v) for k, v in copy.deepcopy(data).items()}
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now().isoformat())
        return row

    def execute(self):
        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self._new_row(item) for item in items]
            self.rows.extend(inserted)
            return FakeResult(copy.deepcopy(inserted))

        if self.action == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            saved = []
            for item in items:
                item = {k: _normalize(v) for k, v in item.items()}
                existing = next(
                    (r for r in self.rows if all(r.get(k) == item.get(k) for k in keys)),
                    None,
                )
                if existing is not None:
                    existing.update(copy.deepcopy(item))
                    saved.append(existing)
                else:
                    row = self._new_row(item)
                    self.rows.append(row)
                    saved.append(row)
            return FakeResult(copy.deepcopy(saved))

        matched = [row for row in self.rows if self._matches(row)]

        if self.action == "update":
            for row in matched:
                row.update({k: _normalize(v) for k, v in copy.deepcopy(self.payload).items()})
            return FakeResult(copy.deepcopy(matched))

        if self.action == "delete":
            for row in matched:
                self.rows.remove(row)
            return FakeResult(copy.deepcopy(matched))

        for column, desc in reversed(self.orders):
            present = [r for r in matched if r.get(column) is not None]
            missing = [r for r in matched if r.get(column) is None]
            matched = sorted(present, key=lambda r: r[column], reverse=desc) + missing
        if self.limit_count is not None:
            matched = matched[: self.limit_count]
        return FakeResult(copy.deepcopy(matched))


class FakeSupabaseClient:
    """In-memory replacement for the Supabase client."""

    def __init__(self):
        self.tables = {}

    def table(self, name):
        return FakeQuery(self.tables.setdefault(name, []))


class StubProvider(AIProvider):
    """AI provider that replays scripted responses, then fails."""

    name = "stub"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    def script(self, *responses):
        self.responses.extend(responses)

    async def generate_text(self, prompt, json_mode=False):
        self.prompts.append(prompt)
        if not self.responses:
            raise AIProviderError("No scripted response")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def db(fake_client):
    return DatabaseService(client=fake_client)


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def ai(provider):
    return HealthAI(provider=provider)


@pytest.fixture
def user(db):
    return db.create_user(UserCreate(name="Asha Rao", email="Asha@Example.com"))


@pytest.fixture
def metrics_payload():
    return HealthMetricsCreate(
        height=170,
        weight=65,
        age=30,
        gender="female",
        activity_level="moderate",
        blood_pressure="115/75",
        heart_rate=68,
        respiratory_rate=16,
        temperature=36.8,
        fitness_goals=["Run a 10k"],
    )
