from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from .models import ArtistStatus, DayStatus, SlotId, SlotState

SCHEMA_VERSION = 1


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArtistProfile(BaseModel):
    """Self-registration form. Blank strings mean "not supplied"."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    phone: str = ""
    stage_name: str = ""
    line_id: str = ""
    genre: str = ""
    instagram: str = ""
    tiktok: str = ""
    youtube: str = ""
    twitter: str = ""
    video_url: str = ""
    video_line_id: str = ""
    note: str = ""

    def social_handles(self) -> list[str]:
        return [h for h in (self.instagram, self.tiktok, self.youtube, self.twitter) if h]


class Artist(_Record):
    id: str
    name: str
    phone: str
    stage_name: str = Field(alias="artist")
    line_id: str
    genre: Optional[str] = None
    instagram: Optional[str] = None
    tiktok: Optional[str] = None
    youtube: Optional[str] = None
    twitter: Optional[str] = None
    video_url: Optional[str] = None
    video_line_id: Optional[str] = None
    note: Optional[str] = None
    status: ArtistStatus = ArtistStatus.PENDING
    created_at: datetime

    @property
    def display_name(self) -> str:
        return self.stage_name or self.name


class ArtistSnapshot(BaseModel):
    """Contact details copied onto a reservation at booking time."""

    artist_id: str
    name: str
    artist_name: str
    phone: str
    line_id: str

    @classmethod
    def from_artist(cls, artist: Artist) -> "ArtistSnapshot":
        return cls(
            artist_id=artist.id,
            name=artist.name,
            artist_name=artist.display_name,
            phone=artist.phone,
            line_id=artist.line_id,
        )


class Reservation(_Record):
    id: str
    date_key: str
    slot_id: SlotId
    artist_id: str
    name: str
    artist_name: str
    phone: str
    line_id: str
    note: Optional[str] = None
    created_at: datetime


class StoreSnapshot(_Record):
    version: StrictInt = SCHEMA_VERSION
    reservations: dict[str, Reservation] = Field(default_factory=dict)
    artists: dict[str, Artist] = Field(default_factory=dict)
    closed_slots: dict[str, Literal[True]] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class BulkResult(BaseModel):
    """Outcome of one key write inside a bulk close/open run."""

    date_key: str
    slot_id: SlotId
    closed: bool
    changed: bool
    done: int
    total: int


class BulkPlan(BaseModel):
    date_keys: list[str]
    slot_ids: list[SlotId]
    closed: bool

    @property
    def total(self) -> int:
        return len(self.date_keys) * len(self.slot_ids)


class DayOverview(BaseModel):
    date_key: str
    status: DayStatus
    slots: dict[SlotId, SlotState]
