from typing import Callable

import pytest
from stagebook.domain.errors import NotFoundError, UnauthorizedError, ValidationError
from stagebook.infrastructure.repositories import InMemorySnapshotStore
from stagebook.models import ArtistStatus
from stagebook.schemas import ArtistProfile
from stagebook.service import BookingService
from stagebook.usecases.admin import AdminGate

ProfileFactory = Callable[..., ArtistProfile]


@pytest.mark.asyncio
async def test_register_needs_a_social_handle_then_starts_pending(
    service: BookingService, make_profile: ProfileFactory, persistence: InMemorySnapshotStore
) -> None:
    with pytest.raises(ValidationError):
        await service.directory.register(make_profile(instagram=""))
    assert persistence.saves == 0

    artist = await service.directory.register(make_profile(instagram="", tiktok="@sora"))
    assert artist.status is ArtistStatus.PENDING
    assert artist.id.startswith("artist_")
    assert artist.tiktok == "@sora"
    assert artist.instagram is None
    assert service.directory.pending_count() == 1


@pytest.mark.asyncio
async def test_approve_without_admin_leaves_pending(service: BookingService, make_profile: ProfileFactory) -> None:
    artist = await service.directory.register(make_profile())
    with pytest.raises(UnauthorizedError):
        await service.directory.approve(artist.id)
    assert service.directory.get(artist.id).status is ArtistStatus.PENDING


@pytest.mark.asyncio
async def test_approve_with_admin(service: BookingService, make_profile: ProfileFactory, admin: AdminGate) -> None:
    artist = await service.directory.register(make_profile())
    approved = await service.directory.approve(artist.id)
    assert approved.status is ArtistStatus.APPROVED
    assert service.directory.get(artist.id).status is ArtistStatus.APPROVED
    assert service.directory.pending_count() == 0

    with pytest.raises(NotFoundError):
        await service.directory.approve("artist_missing")


@pytest.mark.asyncio
async def test_reject_deletes_the_record(service: BookingService, make_profile: ProfileFactory, gate: AdminGate) -> None:
    artist = await service.directory.register(make_profile())
    with pytest.raises(UnauthorizedError):
        await service.directory.reject(artist.id)
    assert service.directory.get(artist.id)

    assert gate.login("open-sesame")
    await service.directory.reject(artist.id)
    with pytest.raises(NotFoundError):
        service.directory.get(artist.id)
    assert service.directory.lookup("sora") is None


@pytest.mark.asyncio
async def test_lookup_by_stage_name_name_or_phone(service: BookingService, make_profile: ProfileFactory) -> None:
    artist = await service.directory.register(make_profile())
    assert service.directory.lookup("SORA") == artist
    assert service.directory.lookup("yamada") == artist
    assert service.directory.lookup("09011112222") == artist
    assert service.directory.lookup("090-1111") == artist
    assert service.directory.lookup("hana") is None
    assert service.directory.lookup("   ") is None


@pytest.mark.asyncio
async def test_review_list_puts_pending_first(
    service: BookingService, make_profile: ProfileFactory, admin: AdminGate
) -> None:
    older = await service.directory.register(make_profile(stage_name="First"))
    newer = await service.directory.register(make_profile(stage_name="Second"))
    pending = await service.directory.register(make_profile(stage_name="Third"))
    await service.directory.approve(older.id)
    await service.directory.approve(newer.id)

    ordered = [a.id for a in service.directory.list_for_review()]
    assert ordered[0] == pending.id
    assert set(ordered[1:]) == {older.id, newer.id}


@pytest.mark.asyncio
async def test_registration_strips_whitespace(service: BookingService, make_profile: ProfileFactory) -> None:
    artist = await service.directory.register(make_profile(name="  Taro  ", genre="  Jazz "))
    assert artist.name == "Taro"
    assert artist.genre == "Jazz"
