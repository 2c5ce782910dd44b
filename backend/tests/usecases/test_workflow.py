from typing import Callable

import pytest
from stagebook.domain.errors import (
    ArtistNotApprovedError,
    InvalidTransitionError,
    NotFoundError,
    SlotClosedError,
    SlotTakenError,
)
from stagebook.infrastructure.repositories import InMemorySnapshotStore
from stagebook.models import ArtistStatus, SlotId
from stagebook.schemas import Artist, ArtistProfile
from stagebook.service import BookingService
from stagebook.usecases.admin import AdminGate
from stagebook.usecases.workflow import BookingState, BookingTrigger, LookupOutcome

ProfileFactory = Callable[..., ArtistProfile]


async def _approved(service: BookingService, make_profile: ProfileFactory, gate: AdminGate, **overrides: str) -> Artist:
    artist = await service.directory.register(make_profile(**overrides))
    assert gate.login("open-sesame")
    await service.directory.approve(artist.id)
    gate.logout()
    return artist


def test_starts_selecting_artist(service: BookingService) -> None:
    flow = service.new_booking()
    assert flow.state is BookingState.SELECTING_ARTIST
    assert len(flow.get_history()) == 1


@pytest.mark.asyncio
async def test_happy_path_books_and_hides_slot(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate
) -> None:
    artist = await _approved(service, make_profile, gate)
    flow = service.new_booking()

    flow.select_slot("2024-02-10", "C")
    assert flow.lookup_artist("sora") is LookupOutcome.ELIGIBLE
    assert flow.state is BookingState.ARTIST_FOUND
    flow.proceed()
    assert flow.state is BookingState.ENTERING_DETAILS

    reservation = await flow.confirm(note="acoustic set")

    assert flow.state is BookingState.CONFIRMED
    assert reservation.artist_id == artist.id
    assert reservation.note == "acoustic set"
    assert SlotId.C not in service.resolver.bookable_slots("2024-02-10")
    assert [e.trigger for e in flow.get_history()[1:]] == [
        BookingTrigger.SLOT_SELECTED,
        BookingTrigger.ARTIST_MATCHED,
        BookingTrigger.PROCEED,
        BookingTrigger.BOOKED,
    ]


@pytest.mark.asyncio
async def test_pending_artist_is_ineligible_not_missing(
    service: BookingService, make_profile: ProfileFactory, persistence: InMemorySnapshotStore
) -> None:
    await service.directory.register(make_profile())
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "A")

    assert flow.lookup_artist("nobody") is LookupOutcome.NOT_FOUND
    assert flow.state is BookingState.SELECTING_ARTIST

    assert flow.lookup_artist("sora") is LookupOutcome.INELIGIBLE
    assert flow.state is BookingState.ARTIST_FOUND
    saves = persistence.saves
    with pytest.raises(ArtistNotApprovedError):
        flow.proceed()
    assert flow.state is BookingState.ARTIST_FOUND
    assert persistence.saves == saves
    assert service.ledger.list_all() == []


@pytest.mark.asyncio
async def test_artist_rejected_after_lookup_cannot_book(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate
) -> None:
    artist = await _approved(service, make_profile, gate)
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "A")
    flow.lookup_artist("sora")
    flow.proceed()

    assert gate.login("open-sesame")
    await service.directory.reject(artist.id)

    with pytest.raises(NotFoundError):
        await flow.confirm()
    assert flow.state is BookingState.ENTERING_DETAILS
    assert service.ledger.list_all() == []


@pytest.mark.asyncio
async def test_confirm_rechecks_slot_closed_after_selection(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate
) -> None:
    await _approved(service, make_profile, gate)
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "B")
    flow.lookup_artist("sora")
    flow.proceed()

    assert gate.login("open-sesame")
    await service.registry.set_closed("2024-02-10", "B", True)

    with pytest.raises(SlotClosedError):
        await flow.confirm()
    assert service.ledger.list_all() == []


@pytest.mark.asyncio
async def test_confirm_rechecks_slot_taken_after_selection(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate
) -> None:
    await _approved(service, make_profile, gate)
    first = service.new_booking()
    second = service.new_booking()
    for flow in (first, second):
        flow.select_slot("2024-02-10", "D")
        flow.lookup_artist("sora")
        flow.proceed()

    await first.confirm()
    with pytest.raises(SlotTakenError):
        await second.confirm()
    assert len(service.ledger.list_for_date("2024-02-10")) == 1


@pytest.mark.asyncio
async def test_changing_slot_resets_to_artist_selection(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate
) -> None:
    await _approved(service, make_profile, gate)
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "A")
    flow.lookup_artist("sora")
    flow.proceed()

    flow.select_slot("2024-02-11", "B")

    assert flow.state is BookingState.SELECTING_ARTIST
    assert flow.artist_id is None
    assert (flow.date_key, flow.slot_id) == ("2024-02-11", SlotId.B)


@pytest.mark.asyncio
async def test_cancel_and_back(service: BookingService, make_profile: ProfileFactory, gate: AdminGate) -> None:
    await _approved(service, make_profile, gate)
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "A")
    flow.lookup_artist("sora")
    flow.proceed()
    flow.back()
    assert flow.state is BookingState.ARTIST_FOUND

    flow.cancel()
    assert flow.state is BookingState.SELECTING_ARTIST
    assert flow.slot_id is None
    with pytest.raises(InvalidTransitionError):
        flow.lookup_artist("sora")


@pytest.mark.asyncio
async def test_select_slot_rejects_unavailable(service: BookingService, admin: AdminGate) -> None:
    await service.registry.set_closed("2024-02-10", "A", True)
    flow = service.new_booking()
    with pytest.raises(SlotClosedError):
        flow.select_slot("2024-02-10", "A")
    assert flow.slot_id is None


@pytest.mark.asyncio
async def test_confirm_out_of_order_is_invalid(service: BookingService) -> None:
    flow = service.new_booking()
    with pytest.raises(InvalidTransitionError):
        await flow.confirm()
    with pytest.raises(InvalidTransitionError):
        flow.proceed()
    with pytest.raises(InvalidTransitionError):
        flow.back()


@pytest.mark.asyncio
async def test_lookup_by_formatted_phone_books(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate
) -> None:
    artist = await _approved(service, make_profile, gate)
    assert service.directory.get(artist.id).status is ArtistStatus.APPROVED
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "A")
    assert flow.lookup_artist("090-1111-2222") is LookupOutcome.ELIGIBLE
    flow.proceed()
    reservation = await flow.confirm()
    assert reservation.phone == "090-1111-2222"


@pytest.mark.asyncio
@pytest.mark.parametrize("cleared", ["artist_id", "slot_id"])
async def test_confirm_without_selection_is_invalid(
    service: BookingService, make_profile: ProfileFactory, gate: AdminGate, cleared: str
) -> None:
    await _approved(service, make_profile, gate)
    flow = service.new_booking()
    flow.select_slot("2024-02-10", "A")
    flow.lookup_artist("sora")
    flow.proceed()
    setattr(flow, cleared, None)

    with pytest.raises(InvalidTransitionError):
        await flow.confirm()
    assert flow.state is BookingState.ENTERING_DETAILS
    assert service.ledger.list_all() == []
