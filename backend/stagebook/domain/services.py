import re
from dataclasses import dataclass
from typing import Collection, Sequence

from ..models import DayStatus, SlotId
from ..schemas import Artist, ArtistProfile
from .errors import HorizonExceededError, SlotClosedError, SlotTakenError, ValidationError

_PHONE_PUNCTUATION = re.compile(r"[\s\-‐－().+/]")


def closed_slot_key(date_key: str, slot_id: SlotId) -> str:
    return f"{date_key}_{slot_id}"


def parse_slot_id(value: str) -> SlotId:
    try:
        return SlotId(value)
    except ValueError as exc:
        raise ValidationError(f"unknown slot id: {value!r}") from exc


@dataclass(frozen=True)
class SlotSnapshot:
    date_key: str
    slot_id: SlotId
    closed: bool
    taken: bool
    past: bool
    too_future: bool


def validate_reservation(snapshot: SlotSnapshot) -> None:
    """
    Pure validation of one (date, slot) at commit time.
    Horizon is checked first, then closure, then an existing booking.
    """
    if snapshot.past:
        raise HorizonExceededError(f"{snapshot.date_key} is in the past")
    if snapshot.too_future:
        raise HorizonExceededError(f"{snapshot.date_key} is beyond the booking horizon")
    if snapshot.closed:
        raise SlotClosedError(f"slot {snapshot.slot_id} on {snapshot.date_key} is closed")
    if snapshot.taken:
        raise SlotTakenError(f"slot {snapshot.slot_id} on {snapshot.date_key} is already booked")


def validate_profile(profile: ArtistProfile) -> None:
    if not profile.name or not profile.phone:
        raise ValidationError("name and phone are required")
    if not profile.stage_name:
        raise ValidationError("stage name is required")
    if not profile.line_id:
        raise ValidationError("contact handle is required")
    if not profile.social_handles():
        raise ValidationError("at least one social media handle is required")
    if not profile.video_url and not profile.video_line_id:
        raise ValidationError("a demo video URL or a video submission contact is required")


def normalize_phone(value: str) -> str:
    return _PHONE_PUNCTUATION.sub("", value)


def artist_matches(artist: Artist, query: str) -> bool:
    """Case-insensitive substring match on stage name or legal name, or on phone digits."""
    q = query.strip().lower()
    if not q:
        return False
    q_phone = normalize_phone(q)
    if q_phone and q_phone in normalize_phone(artist.phone):
        return True
    if q in artist.name.lower():
        return True
    return bool(artist.stage_name) and q in artist.stage_name.lower()


def resolve_day_status(
    *,
    past: bool,
    too_future: bool,
    open_slots: Sequence[SlotId],
    booked: Collection[SlotId],
) -> DayStatus:
    # Priority order, not independent flags.
    if too_future:
        return DayStatus.TOO_FUTURE
    if past:
        return DayStatus.PAST
    if not open_slots:
        return DayStatus.ALL_CLOSED
    if all(slot_id in booked for slot_id in open_slots):
        return DayStatus.FULL
    return DayStatus.PARTIALLY_OPEN
