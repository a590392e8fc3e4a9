"""
Shared pytest fixtures for the passvault test suite.

``FakePool`` mimics the subset of the asyncpg pool API used by the vault
(``acquire()``, ``fetch``, ``fetchrow``, ``execute``, ``transaction``) and
keeps rows in memory, dispatching on the exact SQL statements the modules use.
"""
from datetime import datetime, timedelta, timezone

import pytest

from passvault.vault import item_vault, upgrade
from passvault.vault.config import VaultConfig
from passvault.vault.records import SecretRecord

# Low work factor keeps the suite fast; production default is far higher.
TEST_ITERATIONS = 1000
MASTER_PASSWORD = "correcthorsebatterystaple"


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn
        self.started = False
        self.committed = False
        self.rolled_back = False

    async def start(self):
        self.started = True
        self.conn.pool.snapshot = {k: dict(v) for k, v in self.conn.pool.rows.items()}

    async def commit(self):
        self.committed = True
        self.conn.pool.snapshot = None

    async def rollback(self):
        self.rolled_back = True
        self.conn.pool.rows = self.conn.pool.snapshot
        self.conn.pool.snapshot = None


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool
        self.transactions = []

    def transaction(self):
        tx = FakeTransaction(self)
        self.transactions.append(tx)
        return tx

    async def fetchrow(self, sql, *args):
        return self.pool.dispatch(sql, args)

    async def fetch(self, sql, *args):
        return self.pool.dispatch(sql, args)

    async def execute(self, sql, *args):
        self.pool.dispatch(sql, args)
        return "OK"


class _Acquire:
    def __init__(self, pool):
        self.pool = pool

    async def __aenter__(self):
        return FakeConnection(self.pool)

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakePool:
    """In-memory stand-in for the ``vault.items`` table."""

    def __init__(self):
        self.rows: dict[int, dict] = {}
        self.snapshot = None
        self.statements: list[str] = []
        self._next_id = 1
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._handlers = {
            item_vault._INSERT_ITEM: self._insert,
            item_vault._UPDATE_ITEM: self._update,
            item_vault._SELECT_ITEM: self._select_one,
            item_vault._SELECT_ALL: self._select_all,
            item_vault._DELETE_ITEM: self._delete,
            upgrade._SELECT_BATCH: self._select_batch,
            upgrade._UPDATE_ITEM: self._upgrade,
        }

    def acquire(self):
        return _Acquire(self)

    def dispatch(self, sql, args):
        self.statements.append(sql)
        return self._handlers[sql](*args)

    def _insert(self, owner_id, ciphertext, salt):
        item_id = self._next_id
        self._next_id += 1
        stamp = self._epoch + timedelta(minutes=item_id)
        row = {
            "id": item_id,
            "owner_id": owner_id,
            "ciphertext": ciphertext,
            "salt": salt,
            "created_at": stamp,
            "updated_at": stamp,
        }
        self.rows[item_id] = row
        return dict(row)

    def _owned(self, item_id, owner_id):
        row = self.rows.get(item_id)
        if row is None or row["owner_id"] != owner_id:
            return None
        return row

    def _update(self, item_id, owner_id, ciphertext, salt):
        row = self._owned(item_id, owner_id)
        if row is None:
            return None
        row.update(
            ciphertext=ciphertext, salt=salt,
            updated_at=row["updated_at"] + timedelta(seconds=1),
        )
        return dict(row)

    def _select_one(self, item_id, owner_id):
        row = self._owned(item_id, owner_id)
        return dict(row) if row else None

    def _select_all(self, owner_id):
        rows = [dict(r) for r in self.rows.values() if r["owner_id"] == owner_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    def _delete(self, item_id, owner_id):
        row = self._owned(item_id, owner_id)
        if row is None:
            return None
        del self.rows[item_id]
        return {"id": item_id}

    def _select_batch(self, owner_id, last_id, limit):
        rows = sorted(
            (dict(r) for r in self.rows.values()
             if r["owner_id"] == owner_id and r["id"] > last_id),
            key=lambda r: r["id"],
        )
        return rows[:limit]

    def _upgrade(self, ciphertext, salt, item_id, owner_id):
        row = self._owned(item_id, owner_id)
        if row is not None:
            row.update(ciphertext=ciphertext, salt=salt)


@pytest.fixture
def config():
    """Vault configuration with a test-sized work factor."""
    return VaultConfig(kdf_iterations=TEST_ITERATIONS)


@pytest.fixture
def master_password():
    return MASTER_PASSWORD


@pytest.fixture
def gmail_record():
    """The canonical example record."""
    return SecretRecord(
        title="Gmail",
        username="a@b.com",
        password="Tr0ub4dor&3",
        url="https://gmail.com",
        notes="",
    )


@pytest.fixture
def db_pool():
    return FakePool()
