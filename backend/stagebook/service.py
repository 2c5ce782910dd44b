from __future__ import annotations

import logging
import random
from datetime import date
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings, get_settings
from .database import create_engine, create_sessionmaker, create_tables
from .domain.horizon import Horizon
from .domain.repositories import SnapshotStore
from .infrastructure.repositories import SqlAlchemySnapshotStore
from .store import BookingStore
from .usecases.admin import AdminGate
from .usecases.artists import ArtistDirectory
from .usecases.reservations import ReservationLedger
from .usecases.seed import build_demo_snapshot
from .usecases.slots import AvailabilityResolver, ClosedSlotRegistry
from .usecases.workflow import BookingWorkflow
from .utils.audit_log import AuditInitiator, emit_audit_log
from .utils.time import local_today

logger = logging.getLogger(__name__)


class BookingService:
    """Wires one store to the registry, resolver, ledger and directory."""

    def __init__(self, store: BookingStore, horizon: Horizon, gate: AdminGate, *, bulk_yield_every: int = 20) -> None:
        self.store = store
        self.horizon = horizon
        self.gate = gate
        self.registry = ClosedSlotRegistry(store, horizon, gate, yield_every=bulk_yield_every)
        self.resolver = AvailabilityResolver(store, horizon)
        self.ledger = ReservationLedger(store, horizon, gate)
        self.directory = ArtistDirectory(store, gate)
        self.engine: Optional[AsyncEngine] = None

    @classmethod
    async def open(
        cls,
        settings: Settings,
        persistence: SnapshotStore,
        *,
        clock: Callable[[], date] = local_today,
    ) -> "BookingService":
        store = await BookingStore.load(persistence)
        horizon = Horizon(months=settings.horizon_months, clock=clock)
        service = cls(store, horizon, AdminGate(settings.admin_password), bulk_yield_every=settings.bulk_yield_every)
        if settings.seed_demo and not (store.snapshot.artists or store.snapshot.reservations):
            await service._seed()
        return service

    @classmethod
    async def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        clock: Callable[[], date] = local_today,
    ) -> "BookingService":
        """Open on the configured database, creating the snapshot table if needed. Call ``close()`` when done."""
        settings = settings or get_settings()
        engine = create_engine(settings)
        try:
            await create_tables(engine)
            persistence = SqlAlchemySnapshotStore(create_sessionmaker(engine), settings.snapshot_key)
            service = await cls.open(settings, persistence, clock=clock)
        except BaseException:
            await engine.dispose()
            raise
        service.engine = engine
        return service

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None

    def new_booking(self) -> BookingWorkflow:
        return BookingWorkflow(self.directory, self.resolver, self.ledger)

    async def reset_demo(self, rng: Optional[random.Random] = None) -> None:
        self.gate.require()
        await self._seed(rng, initiator="admin")

    async def _seed(self, rng: Optional[random.Random] = None, *, initiator: AuditInitiator = "system") -> None:
        await self.store.reset(build_demo_snapshot(self.horizon, rng))
        emit_audit_log(action="store.reset", initiator=initiator, message="demo data seeded")
        logger.info("demo data seeded through %s", self.horizon.max_date_key())
