from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Literal, Optional

AuditAction = Literal[
    "reservation.created",
    "reservation.cancelled",
    "artist.registered",
    "artist.approved",
    "artist.rejected",
    "slot.closed",
    "slot.opened",
    "store.reset",
]
AuditInitiator = Literal["artist", "admin", "system"]

_operation_id_ctx: ContextVar[str | None] = ContextVar("operation_id", default=None)

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def get_operation_id() -> Optional[str]:
    return _operation_id_ctx.get()


@contextmanager
def operation(operation_id: str | None = None) -> Iterator[str]:
    """Tag every audit event emitted inside the block with one correlation id."""
    value = operation_id or uuid.uuid4().hex
    token = _operation_id_ctx.set(value)
    try:
        yield value
    finally:
        _operation_id_ctx.reset(token)


def _enum_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    reservation_id: Optional[str] = None,
    artist_id: Optional[str] = None,
    date_key: Optional[str] = None,
    slot_id: Optional[str] = None,
    status_from: Optional[str] = None,
    status_to: Optional[str] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "operation_id": get_operation_id(),
        "reservation_id": reservation_id,
        "artist_id": artist_id,
        "date_key": date_key,
        "slot_id": _enum_to_str(slot_id),
        "status_from": _enum_to_str(status_from),
        "status_to": _enum_to_str(status_to),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update(extra)

    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=False))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
