"""Admission guards serializing check-then-append per conflict key."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ..schemas.inventory import ConflictKey


class KeyedAdmissionLock:
    """
    Single writer per (listing, date, slot) key within this process.

    Admissions on different keys never wait on each other. Lock entries are
    dropped once nobody holds or waits on them. Cross-process exclusion is the
    ledger's job (see ``CapacityLedger.acquire_admission_lock``).
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: ConflictKey) -> AsyncIterator[None]:
        name = key.lock_name()
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._users[name] = self._users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[name] -= 1
            if not self._users[name]:
                del self._users[name]
                del self._locks[name]

    def active_keys(self) -> int:
        return len(self._locks)


class UnguardedAdmission:
    """Naive check-then-act. Concurrent admissions on one key can overbook."""

    @asynccontextmanager
    async def hold(self, key: ConflictKey) -> AsyncIterator[None]:
        yield
