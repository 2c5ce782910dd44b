"""
Booking workflow: slot selection, artist lookup, details entry, commit.

The flow is an explicit transition table. Changing the date or slot, or
cancelling, always drops back to artist selection. The slot is validated
again right before the ledger write because closures and bookings may have
changed since the slot list was shown.

Usage:
    flow = BookingWorkflow(directory, resolver, ledger)
    flow.select_slot("2024-04-01", "C")
    flow.lookup_artist("sora")        # LookupOutcome.ELIGIBLE
    flow.proceed()
    reservation = await flow.confirm(note="acoustic set")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from ..domain.errors import ArtistNotApprovedError, InvalidTransitionError
from ..domain.services import parse_slot_id, validate_reservation
from ..models import ArtistStatus, SlotId, slot_definition
from ..schemas import Artist, ArtistSnapshot, Reservation
from .artists import ArtistDirectory
from .reservations import ReservationLedger
from .slots import AvailabilityResolver

logger = logging.getLogger(__name__)


class BookingState(StrEnum):
    SELECTING_ARTIST = "selecting_artist"
    ARTIST_FOUND = "artist_found"
    ENTERING_DETAILS = "entering_details"
    CONFIRMED = "confirmed"


class BookingTrigger(StrEnum):
    SLOT_SELECTED = "slot_selected"
    ARTIST_MATCHED = "artist_matched"
    ARTIST_MISSING = "artist_missing"
    PROCEED = "proceed"
    BACK = "back"
    BOOKED = "booked"
    RESET = "reset"


class LookupOutcome(StrEnum):
    NOT_FOUND = "not_found"
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"


@dataclass(frozen=True)
class StateEntry:
    state: BookingState
    entered_at: datetime
    trigger: Optional[BookingTrigger] = None


_ANY = tuple(BookingState)

TRANSITIONS: dict[tuple[BookingState, BookingTrigger], BookingState] = {
    **{(s, BookingTrigger.SLOT_SELECTED): BookingState.SELECTING_ARTIST for s in _ANY},
    **{(s, BookingTrigger.RESET): BookingState.SELECTING_ARTIST for s in _ANY},
    (BookingState.SELECTING_ARTIST, BookingTrigger.ARTIST_MATCHED): BookingState.ARTIST_FOUND,
    (BookingState.SELECTING_ARTIST, BookingTrigger.ARTIST_MISSING): BookingState.SELECTING_ARTIST,
    (BookingState.ARTIST_FOUND, BookingTrigger.ARTIST_MATCHED): BookingState.ARTIST_FOUND,
    (BookingState.ARTIST_FOUND, BookingTrigger.ARTIST_MISSING): BookingState.SELECTING_ARTIST,
    (BookingState.ARTIST_FOUND, BookingTrigger.PROCEED): BookingState.ENTERING_DETAILS,
    (BookingState.ENTERING_DETAILS, BookingTrigger.BACK): BookingState.ARTIST_FOUND,
    (BookingState.ENTERING_DETAILS, BookingTrigger.BOOKED): BookingState.CONFIRMED,
}


class BookingWorkflow:
    def __init__(
        self,
        directory: ArtistDirectory,
        resolver: AvailabilityResolver,
        ledger: ReservationLedger,
    ) -> None:
        self.directory = directory
        self.resolver = resolver
        self.ledger = ledger
        self._state = BookingState.SELECTING_ARTIST
        self._history: list[StateEntry] = [
            StateEntry(state=self._state, entered_at=datetime.now(timezone.utc))
        ]
        self.date_key: Optional[str] = None
        self.slot_id: Optional[SlotId] = None
        self.artist_id: Optional[str] = None
        self.eligible = False
        self.reservation: Optional[Reservation] = None

    @property
    def state(self) -> BookingState:
        return self._state

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def _transition(self, trigger: BookingTrigger) -> BookingState:
        target = TRANSITIONS.get((self._state, trigger))
        if target is None:
            allowed = sorted(t for (s, t) in TRANSITIONS if s == self._state)
            raise InvalidTransitionError(
                f"cannot {trigger} from {self._state}; allowed: {', '.join(allowed)}"
            )
        logger.debug("booking flow %s --%s--> %s", self._state, trigger, target)
        self._state = target
        self._history.append(StateEntry(state=target, entered_at=datetime.now(timezone.utc), trigger=trigger))
        return target

    def _clear_artist(self) -> None:
        self.artist_id = None
        self.eligible = False

    def select_slot(self, date_key: str, slot_id: str) -> None:
        """Pick a (date, slot); it must be bookable right now."""
        slot = parse_slot_id(slot_id)
        validate_reservation(self.resolver.slot_snapshot(date_key, slot))
        self._transition(BookingTrigger.SLOT_SELECTED)
        self.date_key = date_key
        self.slot_id = slot
        self.reservation = None
        self._clear_artist()

    def cancel(self) -> None:
        self._transition(BookingTrigger.RESET)
        self.date_key = None
        self.slot_id = None
        self.reservation = None
        self._clear_artist()

    def lookup_artist(self, query: str) -> LookupOutcome:
        if self.slot_id is None:
            raise InvalidTransitionError("select a date and slot before looking up an artist")
        artist = self.directory.lookup(query)
        if artist is None:
            self._transition(BookingTrigger.ARTIST_MISSING)
            self._clear_artist()
            return LookupOutcome.NOT_FOUND
        self._transition(BookingTrigger.ARTIST_MATCHED)
        self.artist_id = artist.id
        self.eligible = artist.status == ArtistStatus.APPROVED
        return LookupOutcome.ELIGIBLE if self.eligible else LookupOutcome.INELIGIBLE

    def proceed(self) -> None:
        if self._state is BookingState.ARTIST_FOUND and not self.eligible:
            raise ArtistNotApprovedError("artist is awaiting approval")
        self._transition(BookingTrigger.PROCEED)

    def back(self) -> None:
        self._transition(BookingTrigger.BACK)

    def _current_artist(self) -> Artist:
        if self.artist_id is None:
            raise InvalidTransitionError("no artist selected")
        artist = self.directory.get(self.artist_id)
        if artist.status != ArtistStatus.APPROVED:
            raise ArtistNotApprovedError("artist is awaiting approval")
        return artist

    async def confirm(self, *, note: Optional[str] = None) -> Reservation:
        if self._state is not BookingState.ENTERING_DETAILS:
            raise InvalidTransitionError(f"cannot confirm from {self._state}")
        if self.date_key is None or self.slot_id is None:
            raise InvalidTransitionError("no slot selected")
        artist = self._current_artist()
        validate_reservation(self.resolver.slot_snapshot(self.date_key, self.slot_id))
        reservation = await self.ledger.reserve(
            self.date_key, self.slot_id, ArtistSnapshot.from_artist(artist), note=note
        )
        self._transition(BookingTrigger.BOOKED)
        self.reservation = reservation
        logger.info("booked %s %s for %s", self.date_key, slot_definition(self.slot_id).time, artist.id)
        return reservation
