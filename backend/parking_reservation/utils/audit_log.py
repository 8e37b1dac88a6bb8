from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "quote.validated",
    "quote.rejected",
    "reservation.committed",
    "reservation.commit_conflict",
    "reservation.replayed",
]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _to_json_value(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json_value(v) for v in sorted(value) if v is not None]
    return value


def emit_audit_log(
    *,
    action: AuditAction,
    facility_id: int,
    user_id: Optional[int],
    state_from: Optional[str],
    state_to: Optional[str],
    reservation_id: Optional[int] = None,
    error_kind: Optional[str] = None,
    final_total: Optional[Decimal] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "request_id": get_request_id(),
        "facility_id": facility_id,
        "user_id": user_id,
        "reservation_id": reservation_id,
        "state_from": _to_json_value(state_from),
        "state_to": _to_json_value(state_to),
        "error_kind": error_kind,
        "final_total": _to_json_value(final_total),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update({k: _to_json_value(v) for k, v in extra.items()})

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
