"""
Shared fakes for the test suite: a scripted LLM, a recording TTS service, a
requests-like session for the Google TTS client, and an in-memory stand-in for
the Supabase client (auth + table query builder).
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from outlet_assistant.models import ChatMessage
from outlet_assistant.services.tts_service import TTSError


# -----------------------------------------------------------------------------
# LLM
# -----------------------------------------------------------------------------

class FakeLLM:
    """Returns scripted replies in order (the last one repeats); Exception entries are raised."""

    model = "fake-model"

    def __init__(self, replies=None, configured=True):
        self.replies = list(replies or ["Hello there, nice to meet you."])
        self.is_configured = configured
        self.calls = []

    def generate(self, system_prompt, messages, temperature=0.7, max_tokens=1000):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


# -----------------------------------------------------------------------------
# TTS
# -----------------------------------------------------------------------------

class FakeTTS:
    """Audio is "[voice]text" as bytes so tests can see what was spoken with which voice."""

    def __init__(self, fail=False, configured=True):
        self.fail = fail
        self.is_configured = configured
        self.calls = []

    def synthesize(self, text, voice="en-GB"):
        self.calls.append((text, voice))
        if self.fail:
            raise TTSError("TTS API error: 500 Internal Server Error - unavailable")
        return f"[{voice}]{text}".encode("utf-8")

    def synthesize_sequence(self, parts):
        return b"".join(self.synthesize(text, voice) for text, voice in parts)


class FakeHTTPResponse:
    def __init__(self, status_code=200, payload=None, reason="OK", text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.reason = reason
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return self._payload


class FakeSession:
    """requests.Session stand-in; each post() returns (or raises) the next scripted item."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


# -----------------------------------------------------------------------------
# SUPABASE
# -----------------------------------------------------------------------------

class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.order_by = None

    def select(self, *columns):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def execute(self):
        rows = self.db.tables.setdefault(self.table, [])

        if self.action == "insert":
            if self.table in self.db.failing_inserts:
                raise RuntimeError(f"insert into {self.table} violates row-level security policy")
            row = dict(self.payload)
            row.setdefault("id", self.db.next_id(self.table))
            row.setdefault("created_at", self.db.now())
            if self.table == "conversations":
                row.setdefault("updated_at", row["created_at"])
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        matched = [row for row in rows if all(f(row) for f in self.filters)]

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
        elif self.action == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]

        data = [dict(row) for row in matched]
        if self.order_by:
            column, desc = self.order_by
            data.sort(key=lambda row: row.get(column) or "", reverse=desc)
        return SimpleNamespace(data=data)


class FakeAuthAdmin:
    def __init__(self, auth):
        self.auth = auth

    def create_user(self, attributes):
        email = attributes["email"]
        if any(user.email == email for user in self.auth.users.values()):
            raise Exception("A user with this email address has already been registered")
        user = SimpleNamespace(id=f"user-{len(self.auth.users) + 1}", email=email)
        self.auth.users[f"token-{user.id}"] = user
        self.auth.created.append(attributes)
        return SimpleNamespace(user=user)


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.created = []
        self.admin = FakeAuthAdmin(self)

    def add_user(self, user_id, email, token):
        self.users[token] = SimpleNamespace(id=user_id, email=email)

    def get_user(self, token):
        if token not in self.users:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=self.users[token])


class FakeSupabase:
    """Enough of supabase.Client for ConversationStore: auth, table() and the query builder."""

    def __init__(self):
        self.tables = {}
        self.auth = FakeAuth()
        # tables whose inserts fail, like a PostgREST error from execute()
        self.failing_inserts = set()
        self._ids = 0
        self._clock = datetime(2020, 1, 1, 9, 0, tzinfo=timezone.utc)

    def next_id(self, table):
        self._ids += 1
        return f"{table[:4]}-{self._ids}"

    def now(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name):
        return FakeQuery(self, name)


# -----------------------------------------------------------------------------
# FIXTURES
# -----------------------------------------------------------------------------

@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_tts():
    return FakeTTS()


@pytest.fixture
def fake_supabase():
    client = FakeSupabase()
    client.auth.add_user("user-a", "a@example.com", "token-a")
    client.auth.add_user("user-b", "b@example.com", "token-b")
    return client


def conversation(*contents):
    """Alternate user / assistant messages, starting with the user."""
    roles = ["user", "assistant"]
    return [ChatMessage(role=roles[i % 2], content=text) for i, text in enumerate(contents)]
