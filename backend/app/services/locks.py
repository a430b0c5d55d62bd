"""Serialization for distribution writes.

On PostgreSQL these are advisory locks: a session-level try-lock per tenant
for bulk resync, and a transaction-level lock per policy for each write. Other
backends (SQLite in tests, single-process deployments) fall back to
in-process locks with the same semantics.
"""
import threading
from contextlib import contextmanager
from typing import Dict

from sqlalchemy import text
from sqlalchemy.orm import Session

from app.core.exceptions import ResyncInProgressError

TENANT_LOCK_NAMESPACE = 7301
POLICY_LOCK_NAMESPACE = 7302
POLICY_LOCK_STRIPES = 64

_tenant_locks: Dict[int, threading.Lock] = {}
_tenant_locks_guard = threading.Lock()
_policy_locks = [threading.Lock() for _ in range(POLICY_LOCK_STRIPES)]


def _is_postgres(db: Session) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def _local_tenant_lock(tenant_id: int) -> threading.Lock:
    with _tenant_locks_guard:
        return _tenant_locks.setdefault(tenant_id, threading.Lock())


@contextmanager
def tenant_resync_lock(db: Session, tenant_id: int):
    """Hold the tenant's resync lock for the block, or fail fast if another resync has it."""
    if _is_postgres(db):
        # Dedicated connection: session connections go back to the pool on every commit
        conn = db.get_bind().connect()
        try:
            acquired = conn.execute(
                text("SELECT pg_try_advisory_lock(:ns, :key)"),
                {"ns": TENANT_LOCK_NAMESPACE, "key": tenant_id},
            ).scalar()
            if not acquired:
                raise ResyncInProgressError(f"A commission resync is already running for tenant {tenant_id}")
            try:
                yield
            finally:
                conn.execute(
                    text("SELECT pg_advisory_unlock(:ns, :key)"),
                    {"ns": TENANT_LOCK_NAMESPACE, "key": tenant_id},
                )
        finally:
            conn.close()
        return

    lock = _local_tenant_lock(tenant_id)
    if not lock.acquire(blocking=False):
        raise ResyncInProgressError(f"A commission resync is already running for tenant {tenant_id}")
    try:
        yield
    finally:
        lock.release()


@contextmanager
def policy_write_lock(db: Session, policy_id: int):
    """Serialize writers of one policy's distribution.

    The PostgreSQL lock is released by the commit or rollback of the
    current transaction, so callers must finish the transaction inside the block.
    """
    if _is_postgres(db):
        db.execute(
            text("SELECT pg_advisory_xact_lock(:ns, :key)"),
            {"ns": POLICY_LOCK_NAMESPACE, "key": policy_id},
        )
        yield
        return

    with _policy_locks[policy_id % POLICY_LOCK_STRIPES]:
        yield
