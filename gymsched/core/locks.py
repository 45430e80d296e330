"""
Locks por clave para serializar las secciones "comprobar solapamiento → escribir".

Dentro de un proceso se usa un `asyncio.Lock` por clave. En PostgreSQL se toma
además un advisory lock de transacción sobre la misma clave, de modo que varios
workers también se serializan. El lock debe mantenerse hasta el commit.
"""
import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class KeyedLock:
    def __init__(self, name: str):
        self.name = name
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable, db: Optional[AsyncSession] = None) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] += 1
        try:
            async with lock:
                if db is not None:
                    await self._advisory_lock(db, key)
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    async def _advisory_lock(self, db: AsyncSession, key: Hashable) -> None:
        if db.get_bind().dialect.name != "postgresql":
            return
        lock_key = f"{self.name}:{key}"
        logger.debug(f"Tomando advisory lock {lock_key}")
        await db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:k))"), {"k": lock_key})


trainer_slot_lock = KeyedLock("trainer_slot")
member_calendar_lock = KeyedLock("member_calendar")
