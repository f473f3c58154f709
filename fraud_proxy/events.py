"""Value types for incoming session events and the results we hand back.

Events are decoded from the JSON body by the HTTP layer and validated on
construction, so everything downstream can trust the field types. Timestamps
are always timezone-aware UTC datetimes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class EventValidationError(ValueError):
    """Raised when an event payload or field is not well formed."""


class EventType(str, enum.Enum):
    PAGE_LOAD = "PageLoad"
    CLICK = "Click"
    FORM_SUBMISSION = "FormSubmission"


def parse_instant(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Returns None for anything that is not a string holding a valid instant.
    Values without an offset are read as UTC.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        # an offset can push the instant past datetime.min or datetime.max
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_millis(value: datetime) -> int:
    """Whole milliseconds since the Unix epoch, floored."""
    return (value - _EPOCH) // _ONE_MS


@dataclass(frozen=True)
class Event:
    session_id: str
    event_type: EventType
    timestamp: datetime
    ip_address: str
    user_id: Optional[str] = None
    metadata: Optional[Mapping[str, str]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.session_id, str) or not self.session_id:
            raise EventValidationError("sessionId must be a non-empty string")
        if not isinstance(self.event_type, EventType):
            raise EventValidationError(f"unknown eventType: {self.event_type!r}")
        if not isinstance(self.timestamp, datetime) or self.timestamp.tzinfo is None:
            raise EventValidationError("timestamp must be a timezone-aware datetime")
        if not isinstance(self.ip_address, str):
            raise EventValidationError("ipAddress must be a string")
        if self.user_id is not None and not isinstance(self.user_id, str):
            raise EventValidationError("userId must be a string when present")
        if self.metadata is not None:
            if not isinstance(self.metadata, Mapping):
                raise EventValidationError("metadata must be an object of strings")
            frozen: Dict[str, str] = {}
            for key, value in self.metadata.items():
                if not isinstance(key, str) or not isinstance(value, str):
                    raise EventValidationError("metadata must map strings to strings")
                frozen[key] = value
            object.__setattr__(self, "metadata", MappingProxyType(frozen))

    @classmethod
    def from_payload(cls, payload: Any) -> "Event":
        """Decode a camelCase JSON object into an Event."""
        if not isinstance(payload, dict):
            raise EventValidationError("event body must be a JSON object")

        for required in ("sessionId", "eventType", "timestamp", "ipAddress"):
            if payload.get(required) is None:
                raise EventValidationError(f"missing field: {required}")

        try:
            event_type = EventType(payload["eventType"])
        except ValueError:
            raise EventValidationError(f"unknown eventType: {payload['eventType']!r}") from None

        timestamp = parse_instant(payload["timestamp"])
        if timestamp is None:
            raise EventValidationError(f"invalid timestamp: {payload['timestamp']!r}")

        return cls(
            session_id=payload["sessionId"],
            user_id=payload.get("userId"),
            event_type=event_type,
            timestamp=timestamp,
            ip_address=payload["ipAddress"],
            metadata=payload.get("metadata"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "eventType": self.event_type.value,
            "timestamp": format_instant(self.timestamp),
            "ipAddress": self.ip_address,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
        }


@dataclass(frozen=True)
class FraudCheckResult:
    session_id: str
    fraud_score: int
    flagged: bool
    reasons: Tuple[str, ...]
    check_timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "fraudScore": self.fraud_score,
            "flagged": self.flagged,
            "reasons": list(self.reasons),
            "checkTimestamp": format_instant(self.check_timestamp),
        }
