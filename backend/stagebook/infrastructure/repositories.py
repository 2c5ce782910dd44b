from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.repositories import SnapshotStore
from ..models import SnapshotRecord


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self, payload: str | None = None) -> None:
        self.payload = payload
        self.saves = 0

    async def load(self) -> str | None:
        return self.payload

    async def save(self, payload: str) -> None:
        self.payload = payload
        self.saves += 1


class SqlAlchemySnapshotStore(SnapshotStore):
    """Stores the whole snapshot as one row keyed by ``key``."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession], key: str) -> None:
        self.sessions = sessions
        self.key = key

    async def load(self) -> str | None:
        async with self.sessions() as session:
            record = await session.get(SnapshotRecord, self.key)
            return record.payload if record is not None else None

    async def save(self, payload: str) -> None:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        async with self.sessions() as session:
            async with session.begin():
                record = await session.get(SnapshotRecord, self.key)
                if record is None:
                    session.add(SnapshotRecord(key=self.key, payload=payload, updated_at=now))
                else:
                    record.payload = payload
                    record.updated_at = now
