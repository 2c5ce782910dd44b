from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from pydantic import ValidationError as SchemaError

from .domain.repositories import SnapshotStore
from .schemas import SCHEMA_VERSION, StoreSnapshot

logger = logging.getLogger(__name__)


def decode_snapshot(raw: str | None) -> StoreSnapshot:
    """Absent, unparsable or other-version payloads yield an empty snapshot."""
    if not raw:
        return StoreSnapshot()
    try:
        snapshot = StoreSnapshot.model_validate_json(raw)
    except SchemaError as exc:
        logger.warning("discarding unreadable snapshot: %s", exc.errors()[:1])
        return StoreSnapshot()
    if "version" not in snapshot.model_fields_set:
        logger.warning("discarding snapshot without a version")
        return StoreSnapshot()
    if snapshot.version != SCHEMA_VERSION:
        logger.warning("discarding snapshot with version %s (expected %s)", snapshot.version, SCHEMA_VERSION)
        return StoreSnapshot()
    return snapshot


class BookingStore:
    """
    Single owner of the committed snapshot.

    Writers go through ``mutate()``, which holds one lock, edits a deep copy,
    persists it and only then swaps it in. Readers use ``snapshot`` without the
    lock and always see the last committed state.
    """

    def __init__(self, persistence: SnapshotStore, snapshot: StoreSnapshot | None = None) -> None:
        self._persistence = persistence
        self._snapshot = snapshot if snapshot is not None else StoreSnapshot()
        self._lock = asyncio.Lock()

    @classmethod
    async def load(cls, persistence: SnapshotStore) -> "BookingStore":
        snapshot = decode_snapshot(await persistence.load())
        logger.info(
            "store loaded: %d reservations, %d artists, %d closed slots",
            len(snapshot.reservations),
            len(snapshot.artists),
            len(snapshot.closed_slots),
        )
        return cls(persistence, snapshot)

    @property
    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    @asynccontextmanager
    async def mutate(self) -> AsyncIterator[StoreSnapshot]:
        async with self._lock:
            draft = self._snapshot.model_copy(deep=True)
            yield draft
            await self._persistence.save(draft.to_json())
            self._snapshot = draft

    async def reset(self, snapshot: StoreSnapshot) -> None:
        fresh = snapshot.model_copy(deep=True)
        async with self.mutate() as draft:
            draft.reservations = fresh.reservations
            draft.artists = fresh.artists
            draft.closed_slots = fresh.closed_slots
