from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import DateTime, String


class Base(DeclarativeBase):
    pass


class SlotId(StrEnum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class ArtistStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"


class DayStatus(StrEnum):
    TOO_FUTURE = "too_future"
    PAST = "past"
    ALL_CLOSED = "all_closed"
    FULL = "full"
    PARTIALLY_OPEN = "partially_open"


class SlotState(StrEnum):
    OPEN = "open"
    CLOSED = "closed"
    BOOKED = "booked"


@dataclass(frozen=True)
class SlotDefinition:
    id: SlotId
    time: str
    label: str


# Canonical display order. Slots are configuration, never persisted.
SLOTS: tuple[SlotDefinition, ...] = (
    SlotDefinition(SlotId.A, "17:00-18:00", "1st set"),
    SlotDefinition(SlotId.B, "18:00-19:00", "2nd set"),
    SlotDefinition(SlotId.C, "19:00-20:00", "3rd set"),
    SlotDefinition(SlotId.D, "20:00-21:00", "4th set"),
)
SLOT_IDS: tuple[SlotId, ...] = tuple(s.id for s in SLOTS)


def slot_definition(slot_id: SlotId) -> SlotDefinition:
    return next(s for s in SLOTS if s.id == slot_id)


class SnapshotRecord(Base):
    """One serialized store snapshot per storage key."""

    __tablename__ = "snapshots"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
