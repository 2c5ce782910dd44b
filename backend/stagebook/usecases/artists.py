from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..domain.errors import NotFoundError
from ..domain.services import artist_matches, validate_profile
from ..models import ArtistStatus
from ..schemas import Artist, ArtistProfile
from ..store import BookingStore
from ..utils.audit_log import emit_audit_log
from .admin import AdminGate
from .reservations import new_id

logger = logging.getLogger(__name__)


class ArtistDirectory:
    def __init__(self, store: BookingStore, gate: AdminGate) -> None:
        self.store = store
        self.gate = gate

    async def register(self, profile: ArtistProfile) -> Artist:
        """Self-registration. The new record always starts out pending."""
        validate_profile(profile)
        async with self.store.mutate() as draft:
            artist_id = new_id("artist")
            while artist_id in draft.artists:
                artist_id = new_id("artist")
            artist = Artist(
                id=artist_id,
                name=profile.name,
                phone=profile.phone,
                stage_name=profile.stage_name,
                line_id=profile.line_id,
                genre=profile.genre or None,
                instagram=profile.instagram or None,
                tiktok=profile.tiktok or None,
                youtube=profile.youtube or None,
                twitter=profile.twitter or None,
                video_url=profile.video_url or None,
                video_line_id=profile.video_line_id or None,
                note=profile.note or None,
                status=ArtistStatus.PENDING,
                created_at=datetime.now(timezone.utc),
            )
            draft.artists[artist_id] = artist
        emit_audit_log(
            action="artist.registered",
            initiator="artist",
            artist_id=artist.id,
            status_to=artist.status,
        )
        return artist

    def lookup(self, query: str) -> Optional[Artist]:
        # First match wins; callers must not depend on which of several duplicates is returned.
        return next((a for a in self.store.snapshot.artists.values() if artist_matches(a, query)), None)

    def get(self, artist_id: str) -> Artist:
        artist = self.store.snapshot.artists.get(artist_id)
        if artist is None:
            raise NotFoundError(f"artist {artist_id} not found")
        return artist

    def list_for_review(self) -> list[Artist]:
        """Pending first, then newest first."""
        newest_first = sorted(self.store.snapshot.artists.values(), key=lambda a: a.created_at, reverse=True)
        return sorted(newest_first, key=lambda a: a.status != ArtistStatus.PENDING)

    def pending_count(self) -> int:
        return sum(1 for a in self.store.snapshot.artists.values() if a.status == ArtistStatus.PENDING)

    async def approve(self, artist_id: str) -> Artist:
        self.gate.require()
        async with self.store.mutate() as draft:
            self.gate.require()
            artist = draft.artists.get(artist_id)
            if artist is None:
                raise NotFoundError(f"artist {artist_id} not found")
            previous = artist.status
            artist.status = ArtistStatus.APPROVED
        emit_audit_log(
            action="artist.approved",
            initiator="admin",
            artist_id=artist_id,
            status_from=previous,
            status_to=ArtistStatus.APPROVED,
        )
        return artist

    async def reject(self, artist_id: str) -> Artist:
        """Rejection deletes the record; there is no stored rejected state."""
        self.gate.require()
        async with self.store.mutate() as draft:
            self.gate.require()
            artist = draft.artists.pop(artist_id, None)
            if artist is None:
                raise NotFoundError(f"artist {artist_id} not found")
        emit_audit_log(
            action="artist.rejected",
            initiator="admin",
            artist_id=artist_id,
            status_from=artist.status,
        )
        logger.info("artist %s removed from directory", artist_id)
        return artist
