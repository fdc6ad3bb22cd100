"""Per-resource locks serializing read-check-write sequences."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class KeyedLock:
    """
    A family of asyncio locks addressed by string key.

    Locks are created on first use and dropped once nobody holds or awaits
    them, so the table only grows with the number of keys in contention.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            self._users[key] = 0
        self._users[key] += 1

        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


# Process-wide lock table shared by all services
resource_locks = KeyedLock()


@asynccontextmanager
async def resource_lock(db: AsyncSession, namespace: str, key: object) -> AsyncIterator[None]:
    """
    Serialize work on one resource across tasks and, on PostgreSQL, processes.

    The in-process lock is held for the block. On PostgreSQL a transaction
    scoped advisory lock is also taken, so it lasts until the caller commits
    or rolls back. Callers must commit inside the block.

    Acquisition order when nesting: registration, then room, then card.

    Args:
        db: Session whose transaction carries the advisory lock
        namespace: Resource kind, e.g. ``"room"``
        key: Resource identifier
    """
    lock_key = f"{namespace}:{key}"

    async with resource_locks.hold(lock_key):
        if db.bind is not None and db.bind.dialect.name == "postgresql":
            await db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
                {"lock_key": lock_key}
            )

        logger.debug("Acquired resource lock", extra={"lock_key": lock_key})
        yield
