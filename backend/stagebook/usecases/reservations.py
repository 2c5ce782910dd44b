from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from ..domain.errors import NotFoundError
from ..domain.horizon import Horizon, check_date_key
from ..domain.services import parse_slot_id, validate_reservation
from ..models import SLOT_IDS
from ..schemas import ArtistSnapshot, Reservation
from ..store import BookingStore
from ..utils.audit_log import emit_audit_log
from .admin import AdminGate
from .slots import build_slot_snapshot

logger = logging.getLogger(__name__)


def new_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(8)}"


class ReservationLedger:
    """Confirmed bookings; at most one per (date, slot)."""

    def __init__(self, store: BookingStore, horizon: Horizon, gate: AdminGate) -> None:
        self.store = store
        self.horizon = horizon
        self.gate = gate

    async def reserve(
        self,
        date_key: str,
        slot_id: str,
        artist: ArtistSnapshot,
        *,
        note: Optional[str] = None,
    ) -> Reservation:
        check_date_key(date_key)
        slot = parse_slot_id(slot_id)
        async with self.store.mutate() as draft:
            # Checked against the draft inside the lock so no second writer can interleave.
            validate_reservation(build_slot_snapshot(draft, self.horizon, date_key, slot))
            reservation_id = new_id("res")
            while reservation_id in draft.reservations:
                reservation_id = new_id("res")
            reservation = Reservation(
                id=reservation_id,
                date_key=date_key,
                slot_id=slot,
                artist_id=artist.artist_id,
                name=artist.name,
                artist_name=artist.artist_name,
                phone=artist.phone,
                line_id=artist.line_id,
                note=(note or "").strip() or None,
                created_at=datetime.now(timezone.utc),
            )
            draft.reservations[reservation_id] = reservation
        emit_audit_log(
            action="reservation.created",
            initiator="artist",
            reservation_id=reservation.id,
            artist_id=reservation.artist_id,
            date_key=date_key,
            slot_id=slot,
        )
        return reservation

    async def cancel(self, reservation_id: str) -> Reservation:
        self.gate.require()
        async with self.store.mutate() as draft:
            self.gate.require()
            removed = draft.reservations.pop(reservation_id, None)
            if removed is None:
                raise NotFoundError(f"reservation {reservation_id} not found")
        emit_audit_log(
            action="reservation.cancelled",
            initiator="admin",
            reservation_id=removed.id,
            artist_id=removed.artist_id,
            date_key=removed.date_key,
            slot_id=removed.slot_id,
        )
        return removed

    def get(self, reservation_id: str) -> Reservation:
        reservation = self.store.snapshot.reservations.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"reservation {reservation_id} not found")
        return reservation

    def list_all(self) -> list[Reservation]:
        order = {s: i for i, s in enumerate(SLOT_IDS)}
        return sorted(self.store.snapshot.reservations.values(), key=lambda r: (r.date_key, order[r.slot_id]))

    def list_for_date(self, date_key: str) -> list[Reservation]:
        check_date_key(date_key)
        return [r for r in self.list_all() if r.date_key == date_key]
