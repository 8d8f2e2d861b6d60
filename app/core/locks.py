"""
In-process keyed locks for booking writes.

Keys look like ``("court", 3)`` or ``("equipment", 7)``. A unit of work asks
for all of its keys at once and they are taken in sorted order, so two
attempts that share resources can never wait on each other in a cycle. The
same order is used for the ``SELECT ... FOR UPDATE`` row locks taken inside
the transaction.

A lock only lives in the registry while someone holds or waits for it, so
keys built from request data (waitlist queue keys) do not pile up.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Iterable, List, Tuple

logger = logging.getLogger(__name__)

LockKey = Tuple[str, Hashable]


def ordered_keys(keys: Iterable[LockKey]) -> List[LockKey]:
    return sorted(set(keys))


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0  # holders + waiters


class ResourceLockRegistry:
    def __init__(self):
        self._entries: Dict[LockKey, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _checkout(self, key: LockKey) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        return entry

    def _checkin(self, key: LockKey, entry: _Entry):
        entry.users -= 1
        if entry.users == 0:
            del self._entries[key]

    def is_locked(self, key: LockKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def acquire(self, keys: Iterable[LockKey]) -> AsyncIterator[List[LockKey]]:
        ordered = ordered_keys(keys)
        used: List[Tuple[LockKey, _Entry]] = []
        held: List[asyncio.Lock] = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                used.append((key, entry))
                await entry.lock.acquire()
                held.append(entry.lock)
            logger.debug(f"Acquired resource locks: {ordered}")
            yield ordered
        finally:
            for lock in reversed(held):
                lock.release()
            for key, entry in reversed(used):
                self._checkin(key, entry)


# Общий реестр процесса
resource_locks = ResourceLockRegistry()
