import argparse
import os
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

DEFAULT_TARGET = "http://localhost:8080"
EVENTS_PATH = "/api/v1/events"
DEFAULT_NORMAL_DELAY = 0.5
DEFAULT_FLOOD_DELAY = 0.02

# Allow heavier bursts when demoing without editing code.
FLOOD_EVENTS = int(os.environ.get("SESSION_SIM_FLOOD_EVENTS", "15"))
FAST_FORM_DELAY_MS = int(os.environ.get("SESSION_SIM_FAST_FORM_MS", "300"))
CLEAN_IP = os.environ.get("SESSION_SIM_CLEAN_IP", "203.0.113.10")
DENYLISTED_IP = os.environ.get("SESSION_SIM_DENYLISTED_IP", "1.1.1.1")

SCENARIOS = ["normal", "fast-form", "flood", "denylisted"]


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_event(
    session_id: str,
    event_type: str,
    timestamp: datetime,
    ip_address: str = CLEAN_IP,
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "sessionId": session_id,
        "userId": None,
        "eventType": event_type,
        "timestamp": _iso(timestamp),
        "ipAddress": ip_address,
    }
    if metadata is not None:
        event["metadata"] = metadata
    return event


def _post(url: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        response = requests.post(url, json=payload, timeout=3)
        print(f"POST {url} -> {response.status_code}")
        if response.ok:
            result = response.json()
            print(f"  score={result.get('fraudScore')} flagged={result.get('flagged')} reasons={result.get('reasons')}")
            return result
    except requests.RequestException as exc:
        print(f"POST {url} failed: {exc}")
    return None


def _paced_sleep(base_delay: float, pace: float) -> None:
    delay = max(base_delay * pace, 0.0)
    if delay:
        time.sleep(delay)


def _new_session(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def simulate_normal(url: str, pace: float) -> List[Optional[Dict[str, Any]]]:
    print("[Normal] Page load, click, then a form submitted at human speed")
    session_id = _new_session("normal")
    loaded_at = datetime.now(timezone.utc)
    events = [
        make_event(session_id, "PageLoad", loaded_at),
        make_event(session_id, "Click", loaded_at + timedelta(seconds=3)),
        make_event(
            session_id,
            "FormSubmission",
            loaded_at + timedelta(seconds=12),
            metadata={"pageLoadTimestamp": _iso(loaded_at)},
        ),
    ]
    results = []
    for event in events:
        results.append(_post(url, event))
        _paced_sleep(DEFAULT_NORMAL_DELAY, pace)
    print("[Normal] Completed")
    return results


def simulate_fast_form(url: str, pace: float) -> List[Optional[Dict[str, Any]]]:
    print(f"[Fast Form] Submitting a form {FAST_FORM_DELAY_MS}ms after page load")
    session_id = _new_session("fastform")
    loaded_at = datetime.now(timezone.utc)
    events = [
        make_event(session_id, "PageLoad", loaded_at),
        make_event(
            session_id,
            "FormSubmission",
            loaded_at + timedelta(milliseconds=FAST_FORM_DELAY_MS),
            metadata={"pageLoadTimestamp": _iso(loaded_at)},
        ),
    ]
    results = []
    for event in events:
        results.append(_post(url, event))
        _paced_sleep(DEFAULT_FLOOD_DELAY, pace)
    print("[Fast Form] Completed")
    return results


def simulate_flood(url: str, pace: float) -> List[Optional[Dict[str, Any]]]:
    print(f"[Flood] Sending {FLOOD_EVENTS} clicks inside one second")
    session_id = _new_session("flood")
    start = datetime.now(timezone.utc)
    step_ms = max(1, 1000 // max(FLOOD_EVENTS, 1))
    results = []
    for index in range(max(1, FLOOD_EVENTS)):
        event_type = "PageLoad" if index == 0 else "Click"
        event = make_event(session_id, event_type, start + timedelta(milliseconds=index * step_ms))
        results.append(_post(url, event))
        _paced_sleep(DEFAULT_FLOOD_DELAY, pace)
    print("[Flood] Completed")
    return results


def simulate_denylisted(url: str, pace: float) -> List[Optional[Dict[str, Any]]]:
    print(f"[Denylisted] Browsing from {DENYLISTED_IP}")
    session_id = _new_session("denylisted")
    loaded_at = datetime.now(timezone.utc)
    events = [
        make_event(session_id, "PageLoad", loaded_at, ip_address=DENYLISTED_IP),
        make_event(session_id, "Click", loaded_at + timedelta(seconds=2), ip_address=DENYLISTED_IP),
    ]
    results = []
    for event in events:
        results.append(_post(url, event))
        _paced_sleep(DEFAULT_NORMAL_DELAY, pace)
    print("[Denylisted] Completed")
    return results


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay demo session traffic against the fraud proxy")
    parser.add_argument("--target", default=DEFAULT_TARGET, help="Base URL for the fraud proxy")
    parser.add_argument(
        "--scenarios",
        nargs="+",
        choices=SCENARIOS,
        help="Specific scenarios to execute (defaults to all)",
    )
    parser.add_argument("--all", action="store_true", help="Run every scenario")
    parser.add_argument(
        "--pace",
        type=float,
        default=1.0,
        help="Multiplier for pacing between requests (lower is faster, higher slows the demo)",
    )
    return parser.parse_args(argv)


def run_scenarios(target: str, scenarios: Sequence[str], pace: float) -> List[str]:
    url = target.rstrip("/") + EVENTS_PATH
    pace_value = pace if pace and pace > 0 else 1.0
    runners = {
        "normal": simulate_normal,
        "fast-form": simulate_fast_form,
        "flood": simulate_flood,
        "denylisted": simulate_denylisted,
    }
    executed: List[str] = []
    for scenario in scenarios:
        runner = runners.get(scenario)
        if runner is None:
            continue
        runner(url, pace_value)
        executed.append(scenario)
    return executed


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    scenarios = args.scenarios or []
    if args.all or not scenarios:
        scenarios = list(SCENARIOS)
    executed = run_scenarios(args.target, scenarios, args.pace)
    missing = set(scenarios) - set(executed)
    if missing:
        print(f"Skipped unknown scenarios: {', '.join(sorted(missing))}")
    print("All selected scenarios finished. Check /metrics for totals.")


if __name__ == "__main__":
    main()
