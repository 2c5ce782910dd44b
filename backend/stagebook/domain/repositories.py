from __future__ import annotations

from typing import Protocol


class SnapshotStore(Protocol):
    """Key-value transport for the serialized store snapshot."""

    async def load(self) -> str | None: ...

    async def save(self, payload: str) -> None: ...
