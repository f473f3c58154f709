from datetime import datetime, timedelta, timezone

import pytest

from fraud_proxy.denylist import Denylist
from fraud_proxy.events import (
    Event,
    EventType,
    EventValidationError,
    FraudCheckResult,
    epoch_millis,
    parse_instant,
)


def make_payload(**overrides):
    payload = {
        "sessionId": "sess-1",
        "userId": "user-7",
        "eventType": "FormSubmission",
        "timestamp": "2024-05-01T12:00:01.250Z",
        "ipAddress": "203.0.113.5",
        "metadata": {"pageLoadTimestamp": "2024-05-01T12:00:00Z"},
    }
    payload.update(overrides)
    return payload


def test_payload_decodes_to_event():
    event = Event.from_payload(make_payload())
    assert event.session_id == "sess-1"
    assert event.user_id == "user-7"
    assert event.event_type is EventType.FORM_SUBMISSION
    assert event.timestamp == datetime(2024, 5, 1, 12, 0, 1, 250000, tzinfo=timezone.utc)
    assert event.metadata["pageLoadTimestamp"] == "2024-05-01T12:00:00Z"


def test_optional_fields_may_be_absent():
    payload = make_payload()
    del payload["userId"]
    del payload["metadata"]
    event = Event.from_payload(payload)
    assert event.user_id is None
    assert event.metadata is None


def test_event_to_payload_uses_wire_names():
    payload = Event.from_payload(make_payload()).to_payload()
    assert payload == make_payload(timestamp="2024-05-01T12:00:01.250Z")


@pytest.mark.parametrize("missing", ["sessionId", "eventType", "timestamp", "ipAddress"])
def test_missing_required_field_is_rejected(missing):
    payload = make_payload()
    del payload[missing]
    with pytest.raises(EventValidationError, match=missing):
        Event.from_payload(payload)


@pytest.mark.parametrize(
    "overrides",
    [
        {"eventType": "Scroll"},
        {"timestamp": "yesterday"},
        {"timestamp": 1714564800},
        {"timestamp": "9999-12-31T23:59:59-01:00"},
        {"sessionId": ""},
        {"ipAddress": 42},
        {"userId": 7},
        {"metadata": {"pageLoadTimestamp": 5}},
        {"metadata": ["not", "a", "map"]},
    ],
)
def test_invalid_fields_are_rejected(overrides):
    with pytest.raises(EventValidationError):
        Event.from_payload(make_payload(**overrides))


def test_non_object_payload_is_rejected():
    with pytest.raises(EventValidationError):
        Event.from_payload(["sessionId"])


def test_event_is_immutable():
    event = Event.from_payload(make_payload())
    with pytest.raises(AttributeError):
        event.session_id = "other"
    with pytest.raises(TypeError):
        event.metadata["pageLoadTimestamp"] = "changed"


def test_event_metadata_is_copied_on_construction():
    metadata = {"pageLoadTimestamp": "2024-05-01T12:00:00Z"}
    event = Event(
        session_id="sess-1",
        event_type=EventType.CLICK,
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
        ip_address="203.0.113.5",
        metadata=metadata,
    )
    metadata["pageLoadTimestamp"] = "changed"
    assert event.metadata["pageLoadTimestamp"] == "2024-05-01T12:00:00Z"


def test_naive_datetime_is_rejected_on_construction():
    with pytest.raises(EventValidationError):
        Event(
            session_id="sess-1",
            event_type=EventType.CLICK,
            timestamp=datetime(2024, 5, 1),
            ip_address="203.0.113.5",
        )


def test_parse_instant_normalises_offsets_to_utc():
    assert parse_instant("2024-05-01T14:00:00+02:00") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    assert parse_instant("2024-05-01T12:00:00") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    assert parse_instant("2024-05-01T12:00:00.5Z") == datetime(2024, 5, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)
    assert parse_instant("") is None
    assert parse_instant(None) is None
    assert parse_instant("0001-01-01T00:00:00+01:00") is None


def test_epoch_millis_floors_sub_millisecond_values():
    base = datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert epoch_millis(base + timedelta(microseconds=1999)) == 1
    assert epoch_millis(base - timedelta(microseconds=1)) == -1


def test_result_payload_shape():
    result = FraudCheckResult(
        session_id="sess-1",
        fraud_score=65,
        flagged=True,
        reasons=("IP address is on the blacklist.",),
        check_timestamp=datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
    )
    assert result.to_payload() == {
        "sessionId": "sess-1",
        "fraudScore": 65,
        "flagged": True,
        "reasons": ["IP address is on the blacklist."],
        "checkTimestamp": "2024-05-01T12:00:00.000Z",
    }


def test_denylist_membership():
    denylist = Denylist(["1.1.1.1", " 2.2.2.2 ", ""])
    assert denylist.contains("1.1.1.1")
    assert "2.2.2.2" in denylist
    assert not denylist.contains("3.3.3.3")
    assert len(denylist) == 2


def test_denylist_is_read_only():
    denylist = Denylist(["1.1.1.1"])
    with pytest.raises(AttributeError):
        denylist._ips = frozenset()
    assert denylist.contains("1.1.1.1")


def test_denylist_defaults_from_env():
    assert set(Denylist.from_env({})) == {"1.1.1.1", "2.2.2.2"}


def test_denylist_from_env_and_file(tmp_path):
    path = tmp_path / "denylist.txt"
    path.write_text("# known proxies\n198.51.100.7\n\n198.51.100.8  # scraper\n", encoding="utf-8")
    denylist = Denylist.from_env(
        {"FRAUD_PROXY_DENYLIST": "9.9.9.9", "FRAUD_PROXY_DENYLIST_FILE": str(path)}
    )
    assert set(denylist) == {"9.9.9.9", "198.51.100.7", "198.51.100.8"}
