from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Optional

from ..domain.horizon import Horizon
from ..domain.services import closed_slot_key
from ..models import SLOT_IDS, ArtistStatus, SlotId
from ..schemas import Artist, ArtistSnapshot, Reservation, StoreSnapshot
from ..utils.time import iter_dates, to_date_key
from .reservations import new_id

WEEKDAY_FULLY_CLOSED_RATE = 0.75
WEEKEND_ONE_CLOSED_RATE = 0.25


def _demo_artists(now: datetime) -> list[Artist]:
    return [
        Artist(
            id="artist_demo_approved_1",
            name="Taro Yamada",
            phone="090-1111-2222",
            stage_name="Sora no Oto",
            genre="Acoustic",
            instagram="sora_note",
            youtube="https://www.youtube.com/@soranote",
            line_id="@soranote",
            status=ArtistStatus.APPROVED,
            created_at=now,
        ),
        Artist(
            id="artist_demo_approved_2",
            name="Hana Sato",
            phone="090-3333-4444",
            stage_name="HANA VIBES",
            genre="Neo-Soul",
            tiktok="@hanavibes",
            instagram="hana_vibes",
            line_id="@hanavibes",
            status=ArtistStatus.APPROVED,
            created_at=now,
        ),
        Artist(
            id="artist_demo_pending_1",
            name="Jiro Tanaka",
            phone="080-5555-6666",
            stage_name="Tokuyama Beats",
            genre="DJ / HipHop",
            twitter="@tokuyamabeats",
            video_url="https://youtu.be/dQw4w9WgXcQ",
            line_id="@tokuyama_beats",
            status=ArtistStatus.PENDING,
            created_at=now,
        ),
    ]


def build_demo_snapshot(horizon: Horizon, rng: Optional[random.Random] = None) -> StoreSnapshot:
    """
    Demo calendar: weekdays mostly closed, weekends open, and the upcoming
    weekends dressed up so one day is full and one is partially booked.
    """
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    snapshot = StoreSnapshot()
    artists = _demo_artists(now)
    for artist in artists:
        snapshot.artists[artist.id] = artist
    first, second = artists[0], artists[1]

    weekends: list[str] = []
    for day in iter_dates(horizon.today(), horizon.end_date()):
        date_key = to_date_key(day)
        if day.weekday() >= 5:
            weekends.append(date_key)
            if rng.random() < WEEKEND_ONE_CLOSED_RATE:
                snapshot.closed_slots[closed_slot_key(date_key, rng.choice(SLOT_IDS))] = True
        elif rng.random() < WEEKDAY_FULLY_CLOSED_RATE:
            for slot_id in SLOT_IDS:
                snapshot.closed_slots[closed_slot_key(date_key, slot_id)] = True
        else:
            for slot_id in SLOT_IDS[1:]:
                snapshot.closed_slots[closed_slot_key(date_key, slot_id)] = True

    def open_on(date_key: str) -> list[SlotId]:
        return [s for s in SLOT_IDS if closed_slot_key(date_key, s) not in snapshot.closed_slots]

    def book(date_key: str, slot_id: SlotId, artist: Artist, note: str) -> None:
        contact = ArtistSnapshot.from_artist(artist)
        reservation = Reservation(
            id=new_id("res_demo"),
            date_key=date_key,
            slot_id=slot_id,
            artist_id=contact.artist_id,
            name=contact.name,
            artist_name=contact.artist_name,
            phone=contact.phone,
            line_id=contact.line_id,
            note=note,
            created_at=now,
        )
        snapshot.reservations[reservation.id] = reservation

    if not weekends:
        return snapshot
    full_day = weekends[1] if len(weekends) > 1 else weekends[0]
    for slot_id in open_on(full_day):
        book(full_day, slot_id, first, "(demo) fully booked")

    partial_day = weekends[2] if len(weekends) > 2 else weekends[0]
    candidates = open_on(partial_day)
    taken = {r.slot_id for r in snapshot.reservations.values() if r.date_key == partial_day}
    candidates = [s for s in candidates if s not in taken]
    if len(candidates) >= 2:
        book(partial_day, candidates[0], second, "(demo) popular slot")
        book(partial_day, candidates[1], first, "(demo) booked")
    return snapshot
