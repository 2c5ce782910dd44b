from datetime import date
from typing import Callable

import pytest
from stagebook.domain.horizon import Horizon
from stagebook.infrastructure.repositories import InMemorySnapshotStore
from stagebook.schemas import ArtistProfile
from stagebook.service import BookingService
from stagebook.store import BookingStore
from stagebook.usecases.admin import AdminGate

TODAY = date(2024, 1, 1)
ADMIN_PASSWORD = "open-sesame"


@pytest.fixture
def horizon() -> Horizon:
    return Horizon(months=3, clock=lambda: TODAY)


@pytest.fixture
def persistence() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def store(persistence: InMemorySnapshotStore) -> BookingStore:
    return BookingStore(persistence)


@pytest.fixture
def gate() -> AdminGate:
    return AdminGate(ADMIN_PASSWORD)


@pytest.fixture
def admin(gate: AdminGate) -> AdminGate:
    assert gate.login(ADMIN_PASSWORD)
    return gate


@pytest.fixture
def service(store: BookingStore, horizon: Horizon, gate: AdminGate) -> BookingService:
    return BookingService(store, horizon, gate, bulk_yield_every=3)


def _make_profile(**overrides: str) -> ArtistProfile:
    fields = {
        "name": "Taro Yamada",
        "phone": "090-1111-2222",
        "stage_name": "Sora no Oto",
        "line_id": "@soranote",
        "instagram": "sora_note",
        "video_url": "https://youtu.be/demo",
    }
    fields.update(overrides)
    return ArtistProfile(**fields)


@pytest.fixture
def make_profile() -> Callable[..., ArtistProfile]:
    return _make_profile
