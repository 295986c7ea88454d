import asyncio
from contextlib import asynccontextmanager


class PairLocks:
    """Per-pair asyncio locks.

    Callers working on the same pair queue up behind one lock; disjoint pairs
    get independent locks. An entry is dropped once nobody holds or awaits it.
    """

    def __init__(self):
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, pair: tuple[str, str]):
        lock = self._locks.get(pair)
        if lock is None:
            lock = self._locks[pair] = asyncio.Lock()
        self._users[pair] = self._users.get(pair, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[pair] -= 1
            if self._users[pair] == 0:
                del self._users[pair]
                del self._locks[pair]
