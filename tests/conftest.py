"""
Pytest configuration and fixtures for Admit tests.

Provides an in-memory stand-in for the Supabase AsyncClient that speaks the
PostgREST builder API the stores use, enforces the schema's unique
constraints and runs admit_accept_invitation atomically.
"""

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

import pytest
from postgrest.exceptions import APIError

from admit.client import Admit
from admit.config import AdmitConfig
from admit.invitations.invites import InvitationManager
from admit.utils.supabase import AdmitSupabaseClient

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

ORG_NAME = "Household budget"
OWNER_EMAIL = "owner@example.com"
ADMIN_EMAIL = "admin@example.com"
MEMBER_EMAIL = "member@example.com"
INVITEE_EMAIL = "invitee@example.com"

# Columns that make a row unique, per table; the predicate limits the index
UNIQUE_KEYS: Dict[str, List[Tuple[Tuple[str, ...], Optional[Callable[[dict], bool]]]]] = {
    "organization_invitations": [
        (("token",), None),
        (("organization_id", "email"), lambda row: row.get("status") == "pending"),
    ],
    "organization_members": [
        (("organization_id", "user_id"), None),
    ],
}


def api_error(message: str, code: str) -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable PostgREST-style request against one FakeDatabase table."""

    def __init__(self, db: "FakeDatabase", table: str) -> None:
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload: Optional[dict] = None
        self.filters: List[Callable[[dict], bool]] = []
        self.order_by: Optional[Tuple[str, bool]] = None
        self.row_range: Optional[Tuple[int, int]] = None
        self.row_limit: Optional[int] = None
        self.count_mode: Optional[str] = None
        self.returning = "representation"

    def select(self, *columns: str, count: Optional[str] = None) -> "FakeQuery":
        self.operation = "select"
        self.count_mode = count
        return self

    def insert(self, json: dict, **kwargs: Any) -> "FakeQuery":
        self.operation = "insert"
        self.payload = json
        return self

    def update(
        self,
        json: dict,
        count: Optional[str] = None,
        returning: str = "representation",
    ) -> "FakeQuery":
        self.operation = "update"
        self.payload = json
        self.count_mode = count
        self.returning = returning
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def lt(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(
            lambda row: row.get(column) is not None
            and _comparable(row[column]) < _comparable(value)
        )
        return self

    def gt(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(
            lambda row: row.get(column) is not None
            and _comparable(row[column]) > _comparable(value)
        )
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = set(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by = (column, desc)
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.row_range = (start, end)
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.row_limit = size
        return self

    def _matching(self) -> List[dict]:
        return [row for row in self.db.rows(self.table) if all(f(row) for f in self.filters)]

    async def execute(self) -> FakeResponse:
        await self.db.enter(self.table, self.operation)

        if self.operation == "insert":
            return FakeResponse([copy.deepcopy(self.db.insert(self.table, self.payload))])

        if self.operation == "update":
            updated = [self.db.update(self.table, row, self.payload) for row in self._matching()]
            data = [] if self.returning == "minimal" else copy.deepcopy(updated)
            count = len(updated) if self.count_mode == "exact" else None
            return FakeResponse(data, count)

        rows = self._matching()
        if self.order_by:
            column, desc = self.order_by
            rows.sort(key=lambda row: _comparable(row.get(column)), reverse=desc)
        total = len(rows)
        if self.row_range:
            start, end = self.row_range
            rows = rows[start : end + 1]
        if self.row_limit is not None:
            rows = rows[: self.row_limit]
        count = total if self.count_mode == "exact" else None
        return FakeResponse(copy.deepcopy(rows), count)


class FakeRpc:
    def __init__(self, db: "FakeDatabase", fn: str, params: dict) -> None:
        self.db = db
        self.fn = fn
        self.params = params

    async def execute(self) -> FakeResponse:
        await self.db.enter(self.fn, "rpc")
        handler = getattr(self.db, f"rpc_{self.fn}", None)
        if handler is None:
            raise api_error(f"function {self.fn} does not exist", "42883")
        return FakeResponse(handler(**self.params))


class FakeAuth:
    """Stands in for AsyncGoTrueClient.get_user."""

    def __init__(self) -> None:
        self.tokens: Dict[str, SimpleNamespace] = {}

    def issue(self, user_id: UUID, email: Optional[str]) -> str:
        token = f"jwt-{user_id}"
        self.tokens[token] = SimpleNamespace(id=str(user_id), email=email)
        return token

    async def get_user(self, jwt: Optional[str] = None) -> Optional[SimpleNamespace]:
        user = self.tokens.get(jwt or "")
        if user is None:
            return None
        return SimpleNamespace(user=user)


class FakeDatabase:
    """
    In-memory tables behind a Supabase-like client.

    Each execute() yields to the event loop once and then runs without
    awaiting, so every request is atomic, like a single SQL statement.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[dict]] = {
            "organizations": [],
            "organization_members": [],
            "organization_invitations": [],
            "admit_migrations": [],
        }
        self.user_emails: Dict[str, str] = {}
        self.failures: Dict[str, List[Tuple[Optional[str], Exception]]] = {}
        self.delay = 0.0
        self.calls: List[str] = []
        self.auth = FakeAuth()

    # Client surface used by AdmitSupabaseClient

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, fn: str, params: dict) -> FakeRpc:
        return FakeRpc(self, fn, params)

    # Test helpers

    def fail_next(self, target: str, error: Exception, operation: Optional[str] = None) -> None:
        """
        Make the next request against ``target`` (table or function) raise.

        ``operation`` narrows it to "select", "insert", "update" or "rpc".
        """
        self.failures.setdefault(target, []).append((operation, error))

    async def enter(self, target: str, operation: str) -> None:
        self.calls.append(target)
        await asyncio.sleep(self.delay)
        pending = self.failures.get(target, [])
        for i, (wanted, error) in enumerate(pending):
            if wanted is None or wanted == operation:
                del pending[i]
                raise error

    def rows(self, table: str) -> List[dict]:
        if table == "organization_member_emails":
            return [
                {
                    "organization_id": m["organization_id"],
                    "user_id": m["user_id"],
                    "email": self.user_emails.get(m["user_id"], "").strip().lower(),
                }
                for m in self.tables["organization_members"]
            ]
        return self.tables.setdefault(table, [])

    def _check_unique(self, table: str, candidate: dict, ignore: Optional[dict] = None) -> None:
        for columns, predicate in UNIQUE_KEYS.get(table, []):
            if predicate and not predicate(candidate):
                continue
            key = tuple(candidate.get(c) for c in columns)
            for row in self.tables[table]:
                if row is ignore or (predicate and not predicate(row)):
                    continue
                if tuple(row.get(c) for c in columns) == key:
                    raise api_error(
                        f'duplicate key value violates unique constraint on {table}', "23505"
                    )

    def insert(self, table: str, payload: dict) -> dict:
        row = dict(payload)
        if table == "organization_invitations":
            row.setdefault("id", str(uuid4()))
            row.setdefault("status", "pending")
            row.setdefault("accepted_at", None)
            row.setdefault("accepted_by", None)
            row.setdefault("invited_by", None)
        self._check_unique(table, row)
        self.tables.setdefault(table, []).append(row)
        return row

    def update(self, table: str, row: dict, payload: dict) -> dict:
        merged = {**row, **payload}
        self._check_unique(table, merged, ignore=row)
        row.update(payload)
        return row

    def rpc_admit_accept_invitation(self, p_invitation_id: str, p_user_id: str, p_now: str) -> List[dict]:
        invitations = self.tables["organization_invitations"]
        invitation = next((row for row in invitations if row["id"] == p_invitation_id), None)
        if invitation is None or invitation["status"] != "pending":
            raise api_error("invitation is not pending", "AD001")

        members = self.tables["organization_members"]
        if not any(
            m["organization_id"] == invitation["organization_id"] and m["user_id"] == p_user_id
            for m in members
        ):
            members.append(
                {
                    "organization_id": invitation["organization_id"],
                    "user_id": p_user_id,
                    "role": invitation["role"],
                    "joined_at": p_now,
                }
            )

        invitation.update({"status": "accepted", "accepted_at": p_now, "accepted_by": p_user_id})
        return [copy.deepcopy(invitation)]

    def add_organization(self, name: str = ORG_NAME) -> UUID:
        org_id = uuid4()
        self.tables["organizations"].append(
            {"id": str(org_id), "name": name, "description": None, "created_by": None}
        )
        return org_id

    def add_user(self, email: str) -> UUID:
        user_id = uuid4()
        self.user_emails[str(user_id)] = email
        return user_id

    def add_member(self, org_id: UUID, user_id: UUID, role: str = "member") -> None:
        self.tables["organization_members"].append(
            {
                "organization_id": str(org_id),
                "user_id": str(user_id),
                "role": role,
                "joined_at": (NOW - timedelta(days=30)).isoformat(),
            }
        )

    def members_of(self, org_id: UUID, user_id: UUID) -> List[dict]:
        return [
            m
            for m in self.tables["organization_members"]
            if m["organization_id"] == str(org_id) and m["user_id"] == str(user_id)
        ]

    def invitation(self, invitation_id: UUID) -> dict:
        return next(
            row
            for row in self.tables["organization_invitations"]
            if row["id"] == str(invitation_id)
        )


class FrozenClock:
    """Controllable clock for expiry tests."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def admit_config():
    """Create a test AdmitConfig."""
    return AdmitConfig(
        supabase_url="https://test.supabase.co",
        supabase_key="test-service-key-12345678901234567890",
        db_schema="public",
        request_timeout_seconds=1.0,
    )


@pytest.fixture
def db():
    """Create an empty in-memory datastore."""
    return FakeDatabase()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def admit_client(db, admit_config):
    """Create an AdmitSupabaseClient over the in-memory datastore."""
    return AdmitSupabaseClient(config=admit_config, client=db)


@pytest.fixture
def admit(admit_client, admit_config, clock):
    """Create a test Admit instance driven by the frozen clock."""
    admit_instance = Admit(config=admit_config, client=admit_client)
    admit_instance.invites = InvitationManager(admit_instance, clock=clock)
    return admit_instance


@pytest.fixture
def org_id(db):
    return db.add_organization()


@pytest.fixture
def owner_id(db, org_id):
    user_id = db.add_user(OWNER_EMAIL)
    db.add_member(org_id, user_id, "owner")
    return user_id


@pytest.fixture
def admin_id(db, org_id):
    user_id = db.add_user(ADMIN_EMAIL)
    db.add_member(org_id, user_id, "admin")
    return user_id


@pytest.fixture
def member_id(db, org_id):
    user_id = db.add_user(MEMBER_EMAIL)
    db.add_member(org_id, user_id, "member")
    return user_id


@pytest.fixture
def invitee_id(db):
    """A registered user who is not yet in the organization."""
    return db.add_user(INVITEE_EMAIL)


@pytest.fixture
async def invitation(admit, org_id, owner_id):
    """A pending member invitation for INVITEE_EMAIL, issued by the owner."""
    return await admit.invites.invite(org_id, owner_id, INVITEE_EMAIL)
