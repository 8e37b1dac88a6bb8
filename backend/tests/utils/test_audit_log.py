import json
from datetime import date
from decimal import Decimal
from typing import Any, List

import pytest
from parking_reservation.domain.entities import QuoteState
from parking_reservation.utils import audit_log
from parking_reservation.utils.request_id import set_request_id


class CapturingLogger:
    def __init__(self) -> None:
        self.messages: List[str] = []

    def info(self, message: str) -> None:
        self.messages.append(message)


def test_quote_validated_record_is_compact_json(monkeypatch: pytest.MonkeyPatch) -> None:
    logger = CapturingLogger()
    monkeypatch.setattr(audit_log, "_audit_logger", logger)

    set_request_id("req-123")
    audit_log.emit_audit_log(
        action="quote.validated",
        facility_id=3,
        user_id=4,
        state_from=QuoteState.DRAFT,
        state_to=QuoteState.VALIDATED,
        final_total=Decimal("640.000"),
        extra={"unavailable_dates": frozenset({date(2025, 6, 3), date(2025, 6, 2)})},
    )
    set_request_id(None)

    payload = json.loads(logger.messages[0])
    assert payload["action"] == "quote.validated"
    assert payload["request_id"] == "req-123"
    assert payload["state_from"] == "draft"
    assert payload["state_to"] == "validated"
    assert payload["final_total"] == "640.000"
    assert payload["unavailable_dates"] == ["2025-06-02", "2025-06-03"]
    assert "reservation_id" not in payload
    assert "timestamp" in payload


def test_rejection_record_carries_error_kind(monkeypatch: pytest.MonkeyPatch) -> None:
    logger = CapturingLogger()
    monkeypatch.setattr(audit_log, "_audit_logger", logger)

    audit_log.emit_audit_log(
        action="quote.rejected",
        facility_id=3,
        user_id=None,
        state_from=QuoteState.DRAFT,
        state_to=QuoteState.REJECTED,
        error_kind="fully_booked_range",
        message="all dates in the selected range are fully booked",
    )
    payload = json.loads(logger.messages[0])
    assert payload["error_kind"] == "fully_booked_range"
    assert payload["message"].startswith("all dates")
    assert "user_id" not in payload


def test_emit_audit_log_raises_on_logger_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    class BrokenLogger:
        def info(self, _: Any) -> None:
            raise ValueError("fail")

    monkeypatch.setattr(audit_log, "_audit_logger", BrokenLogger())

    with pytest.raises(RuntimeError):
        audit_log.emit_audit_log(
            action="reservation.committed",
            facility_id=3,
            user_id=4,
            reservation_id=1,
            state_from=QuoteState.VALIDATED,
            state_to=QuoteState.CONFIRMED,
        )
