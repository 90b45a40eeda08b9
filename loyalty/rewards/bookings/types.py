from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from loyalty.core.money import to_money
from loyalty.rewards.errors import LoyaltyValidationError
from loyalty.rewards.notifications.types import NotificationPayload
from loyalty.rewards.progress.types import ProgressSnapshot
from loyalty.rewards.redemptions.types import PointsEarnResult, RedemptionResult

EVENT_TYPE_COMPLETED = "booking_completed"
EVENT_TYPE_CANCELLED = "booking_cancelled"


@dataclass(frozen=True, slots=True)
class BookingCompleted:
    booking_id: str
    customer_id: int
    business_id: int
    total_amount: Decimal
    occurred_at: datetime
    service_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BookingCancelled:
    booking_id: str
    customer_id: int
    business_id: int
    total_amount: Decimal
    occurred_at: datetime
    service_ids: tuple[str, ...] = ()


BookingEvent = BookingCompleted | BookingCancelled


@dataclass(slots=True)
class BookingEventResult:
    booking_id: str
    event_type: str
    idempotent_replay: bool = False
    progress: ProgressSnapshot | None = None
    newly_unlocked: bool = False
    voucher_code: str | None = None
    points_earned: PointsEarnResult | None = None
    redemption: RedemptionResult | None = None
    notifications: list[NotificationPayload] = field(default_factory=list)


def _require_int(payload: Mapping[str, object], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool):
        raise LoyaltyValidationError(f"{key} must be an integer")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as exc:
            raise LoyaltyValidationError(f"{key} must be an integer") from exc
    if not isinstance(value, int):
        raise LoyaltyValidationError(f"{key} must be an integer")
    if value <= 0:
        raise LoyaltyValidationError(f"{key} must be positive")
    return value


def _require_booking_id(payload: Mapping[str, object]) -> str:
    value = payload.get("booking_id")
    if isinstance(value, bool) or value is None:
        raise LoyaltyValidationError("booking_id is required")
    booking_id = str(value).strip()
    if not booking_id or len(booking_id) > 64:
        raise LoyaltyValidationError("booking_id must be 1..64 characters")
    return booking_id


def _parse_amount(payload: Mapping[str, object]) -> Decimal:
    value = payload.get("total_amount")
    if value is None or isinstance(value, bool):
        raise LoyaltyValidationError("total_amount is required")
    try:
        amount = to_money(str(value))
    except ValueError as exc:
        raise LoyaltyValidationError(f"invalid total_amount: {value!r}") from exc
    if amount < 0:
        raise LoyaltyValidationError("total_amount cannot be negative")
    return amount


def _parse_timestamp(payload: Mapping[str, object]) -> datetime:
    value = payload.get("timestamp")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise LoyaltyValidationError(f"invalid timestamp: {value!r}") from exc
    else:
        raise LoyaltyValidationError("timestamp is required")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_service_ids(payload: Mapping[str, object]) -> tuple[str, ...]:
    value = payload.get("service_ids") or ()
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise LoyaltyValidationError("service_ids must be a list")
    return tuple(str(service_id) for service_id in value)


def parse_booking_event(payload: Mapping[str, object]) -> BookingEvent:
    """Builds a typed booking event from a loosely shaped lifecycle payload."""
    event_type = payload.get("event_type")
    fields = {
        "booking_id": _require_booking_id(payload),
        "customer_id": _require_int(payload, "customer_id"),
        "business_id": _require_int(payload, "business_id"),
        "total_amount": _parse_amount(payload),
        "occurred_at": _parse_timestamp(payload),
        "service_ids": _parse_service_ids(payload),
    }
    if event_type == EVENT_TYPE_COMPLETED:
        return BookingCompleted(**fields)
    if event_type == EVENT_TYPE_CANCELLED:
        return BookingCancelled(**fields)
    raise LoyaltyValidationError(f"unknown booking event type: {event_type!r}")


def booking_event_to_payload(event: BookingEvent) -> dict[str, object]:
    event_type = EVENT_TYPE_COMPLETED if isinstance(event, BookingCompleted) else EVENT_TYPE_CANCELLED
    return {
        "event_type": event_type,
        "booking_id": event.booking_id,
        "customer_id": event.customer_id,
        "business_id": event.business_id,
        "total_amount": str(event.total_amount),
        "timestamp": event.occurred_at.isoformat(),
        "service_ids": list(event.service_ids),
    }
