from __future__ import annotations

import asyncio
import calendar
import logging
import uuid
from datetime import date
from typing import AsyncIterator, Iterable

from ..domain.errors import RangeInvalidError, ValidationError
from ..domain.horizon import Horizon, check_date_key
from ..domain.services import SlotSnapshot, closed_slot_key, parse_slot_id, resolve_day_status
from ..models import SLOT_IDS, DayStatus, SlotId, SlotState
from ..schemas import BulkPlan, BulkResult, DayOverview, StoreSnapshot
from ..store import BookingStore
from ..utils.audit_log import emit_audit_log, operation
from ..utils.time import iter_dates, to_date_key
from .admin import AdminGate

logger = logging.getLogger(__name__)


def booked_slots(state: StoreSnapshot, date_key: str) -> set[SlotId]:
    return {r.slot_id for r in state.reservations.values() if r.date_key == date_key}


def build_slot_snapshot(state: StoreSnapshot, horizon: Horizon, date_key: str, slot_id: SlotId) -> SlotSnapshot:
    return SlotSnapshot(
        date_key=date_key,
        slot_id=slot_id,
        closed=closed_slot_key(date_key, slot_id) in state.closed_slots,
        taken=any(r.date_key == date_key and r.slot_id == slot_id for r in state.reservations.values()),
        past=horizon.is_past(date_key),
        too_future=horizon.is_too_future(date_key),
    )


def _normalize_slot_ids(slot_ids: Iterable[str]) -> list[SlotId]:
    wanted = {parse_slot_id(s) for s in slot_ids}
    if not wanted:
        return list(SLOT_IDS)
    return [s for s in SLOT_IDS if s in wanted]


class ClosedSlotRegistry:
    """Administrative open/closed overrides per (date, slot)."""

    def __init__(self, store: BookingStore, horizon: Horizon, gate: AdminGate, *, yield_every: int = 20) -> None:
        self.store = store
        self.horizon = horizon
        self.gate = gate
        self.yield_every = yield_every

    def is_closed(self, date_key: str, slot_id: str) -> bool:
        check_date_key(date_key)
        return closed_slot_key(date_key, parse_slot_id(slot_id)) in self.store.snapshot.closed_slots

    def closed_keys(self) -> set[str]:
        return set(self.store.snapshot.closed_slots)

    def _check_within_horizon(self, date_key: str) -> None:
        check_date_key(date_key)
        if self.horizon.is_too_future(date_key):
            raise RangeInvalidError(f"{date_key} is beyond the booking horizon {self.horizon.max_date_key()}")

    async def set_closed(self, date_key: str, slot_id: str, closed: bool) -> bool:
        """Set one flag. Returns whether the stored state changed."""
        self.gate.require()
        slot = parse_slot_id(slot_id)
        self._check_within_horizon(date_key)
        async with self.store.mutate() as draft:
            self.gate.require()
            changed = _write_flag(draft, date_key, slot, closed)
        _audit_flag(date_key, slot, closed, changed)
        return changed

    async def toggle(self, date_key: str, slot_id: str) -> bool:
        """Flip one flag under the lock. Returns the new closed state."""
        self.gate.require()
        slot = parse_slot_id(slot_id)
        self._check_within_horizon(date_key)
        async with self.store.mutate() as draft:
            self.gate.require()
            closed = closed_slot_key(date_key, slot) not in draft.closed_slots
            _write_flag(draft, date_key, slot, closed)
        _audit_flag(date_key, slot, closed, True)
        return closed

    def plan_bulk(self, date_keys: Iterable[str], slot_ids: Iterable[str], closed: bool) -> BulkPlan:
        keys = sorted(set(date_keys))
        for date_key in keys:
            self._check_within_horizon(date_key)
        return BulkPlan(date_keys=keys, slot_ids=_normalize_slot_ids(slot_ids), closed=closed)

    def plan_range(
        self,
        start: str,
        end: str,
        closed: bool,
        *,
        weekdays: Iterable[int] = (),
        slot_ids: Iterable[str] = (),
    ) -> BulkPlan:
        """
        Expand an inclusive date range into a bulk plan.

        ``weekdays`` uses ``date.weekday()`` numbering (Monday is 0); empty
        means every weekday. Empty ``slot_ids`` means every slot.
        """
        start_date = check_date_key(start)
        end_date = check_date_key(end)
        if start > end:
            raise RangeInvalidError(f"start {start} is after end {end}")
        if self.horizon.is_too_future(start) or self.horizon.is_too_future(end):
            raise RangeInvalidError(f"range must end on or before {self.horizon.max_date_key()}")
        days = set(weekdays)
        if any(not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            raise ValidationError(f"weekdays must be in 0..6, got {sorted(days, key=str)}")
        if not days:
            days = set(range(7))
        keys = [to_date_key(d) for d in iter_dates(start_date, end_date) if d.weekday() in days]
        return BulkPlan(date_keys=keys, slot_ids=_normalize_slot_ids(slot_ids), closed=closed)

    async def bulk_set_closed(self, date_keys: Iterable[str], slot_ids: Iterable[str], closed: bool) -> list[BulkResult]:
        self.gate.require()
        plan = self.plan_bulk(date_keys, slot_ids, closed)
        return [result async for result in self.apply(plan)]

    async def set_day_closed(self, date_key: str, closed: bool) -> list[BulkResult]:
        return await self.bulk_set_closed([date_key], [], closed)

    def set_closed_range(
        self,
        start: str,
        end: str,
        closed: bool,
        *,
        weekdays: Iterable[int] = (),
        slot_ids: Iterable[str] = (),
    ) -> AsyncIterator[BulkResult]:
        """
        Validate now, write lazily.

        Raises before anything is written; the returned iterator applies the
        plan in chunks and yields one result per key. Abandoning it midway
        leaves the already-written keys in place, and running the same range
        again completes it.
        """
        self.gate.require()
        plan = self.plan_range(start, end, closed, weekdays=weekdays, slot_ids=slot_ids)
        return self.apply(plan)

    async def apply(self, plan: BulkPlan) -> AsyncIterator[BulkResult]:
        keys = [(d, s) for d in plan.date_keys for s in plan.slot_ids]
        total = plan.total
        operation_id = uuid.uuid4().hex
        done = 0
        logger.info("bulk %s: %d keys", "close" if plan.closed else "open", total)
        for offset in range(0, total, self.yield_every):
            chunk = keys[offset : offset + self.yield_every]
            async with self.store.mutate() as draft:
                self.gate.require()
                changes = [_write_flag(draft, d, s, plan.closed) for d, s in chunk]
            with operation(operation_id):
                for (date_key, slot_id), changed in zip(chunk, changes):
                    if changed:
                        _audit_flag(date_key, slot_id, plan.closed, changed, bulk=True)
            for (date_key, slot_id), changed in zip(chunk, changes):
                done += 1
                yield BulkResult(
                    date_key=date_key,
                    slot_id=slot_id,
                    closed=plan.closed,
                    changed=changed,
                    done=done,
                    total=total,
                )
            await asyncio.sleep(0)


def _write_flag(draft: StoreSnapshot, date_key: str, slot_id: SlotId, closed: bool) -> bool:
    key = closed_slot_key(date_key, slot_id)
    was_closed = key in draft.closed_slots
    if closed:
        draft.closed_slots[key] = True
    else:
        draft.closed_slots.pop(key, None)
    return was_closed != closed


def _audit_flag(date_key: str, slot_id: SlotId, closed: bool, changed: bool, *, bulk: bool = False) -> None:
    extra: dict[str, bool] = {"changed": changed}
    if bulk:
        extra["bulk"] = True
    emit_audit_log(
        action="slot.closed" if closed else "slot.opened",
        initiator="admin",
        date_key=date_key,
        slot_id=slot_id,
        extra=extra,
    )


class AvailabilityResolver:
    """Read-side projection over closures, reservations and the horizon. Never cached."""

    def __init__(self, store: BookingStore, horizon: Horizon) -> None:
        self.store = store
        self.horizon = horizon

    def open_slots(self, date_key: str) -> list[SlotId]:
        check_date_key(date_key)
        closed = self.store.snapshot.closed_slots
        return [s for s in SLOT_IDS if closed_slot_key(date_key, s) not in closed]

    def day_status(self, date_key: str) -> DayStatus:
        state = self.store.snapshot
        open_slots = self.open_slots(date_key)
        return resolve_day_status(
            past=self.horizon.is_past(date_key),
            too_future=self.horizon.is_too_future(date_key),
            open_slots=open_slots,
            booked=booked_slots(state, date_key),
        )

    def slot_board(self, date_key: str) -> dict[SlotId, SlotState]:
        check_date_key(date_key)
        state = self.store.snapshot
        booked = booked_slots(state, date_key)
        board: dict[SlotId, SlotState] = {}
        for slot_id in SLOT_IDS:
            if closed_slot_key(date_key, slot_id) in state.closed_slots:
                board[slot_id] = SlotState.CLOSED
            elif slot_id in booked:
                board[slot_id] = SlotState.BOOKED
            else:
                board[slot_id] = SlotState.OPEN
        return board

    def bookable_slots(self, date_key: str) -> list[SlotId]:
        check_date_key(date_key)
        if not self.horizon.is_bookable(date_key):
            return []
        return [s for s, st in self.slot_board(date_key).items() if st is SlotState.OPEN]

    def slot_snapshot(self, date_key: str, slot_id: str) -> SlotSnapshot:
        check_date_key(date_key)
        return build_slot_snapshot(self.store.snapshot, self.horizon, date_key, parse_slot_id(slot_id))

    def month_overview(self, year: int, month: int) -> list[DayOverview]:
        if not 1 <= month <= 12:
            raise ValidationError(f"invalid month: {month}")
        days = calendar.monthrange(year, month)[1]
        overview = []
        for day in range(1, days + 1):
            date_key = to_date_key(date(year, month, day))
            overview.append(
                DayOverview(date_key=date_key, status=self.day_status(date_key), slots=self.slot_board(date_key))
            )
        return overview
