"""Scoring rules evaluated against each incoming event.

Every rule is a total function of the current event, the session history
(which already contains the current event) and the denylist. A rule that does
not apply returns an outcome with ``fired=False`` instead of raising, and the
timestamps it reads are client supplied, so any skew is scored, never rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from fraud_proxy import config
from fraud_proxy.denylist import Denylist
from fraud_proxy.events import Event, EventType, epoch_millis, parse_instant
from fraud_proxy.reasons import build_reason


@dataclass(frozen=True)
class RuleOutcome:
    rule_id: str
    fired: bool = False
    points: int = 0
    reason: Optional[str] = None

    @classmethod
    def abstain(cls, rule_id: str) -> "RuleOutcome":
        return cls(rule_id=rule_id)


Rule = Callable[[Event, Sequence[Event], Denylist], RuleOutcome]


def blacklisted_ip(event: Event, history: Sequence[Event], denylist: Denylist) -> RuleOutcome:
    if not denylist.contains(event.ip_address):
        return RuleOutcome.abstain("blacklisted_ip")
    return RuleOutcome(
        rule_id="blacklisted_ip",
        fired=True,
        points=config.DENYLIST_PENALTY,
        reason=build_reason("blacklisted_ip"),
    )


def fast_form_submission(event: Event, history: Sequence[Event], denylist: Denylist) -> RuleOutcome:
    """Form submitted less than a second after its page load.

    A submission stamped before its own page load gives a negative diff and
    fires as well.
    """
    if event.event_type is not EventType.FORM_SUBMISSION or not event.metadata:
        return RuleOutcome.abstain("fast_form_submission")

    page_load = parse_instant(event.metadata.get(config.PAGE_LOAD_METADATA_KEY))
    if page_load is None:
        return RuleOutcome.abstain("fast_form_submission")

    diff_ms = epoch_millis(event.timestamp) - epoch_millis(page_load)
    if diff_ms >= config.FAST_SUBMISSION_THRESHOLD_MS:
        return RuleOutcome.abstain("fast_form_submission")

    return RuleOutcome(
        rule_id="fast_form_submission",
        fired=True,
        points=config.FAST_SUBMISSION_PENALTY,
        reason=build_reason("fast_form_submission", diff_ms=diff_ms),
    )


def high_frequency(event: Event, history: Sequence[Event], denylist: Denylist) -> RuleOutcome:
    """Escalating penalty for every event past the threshold in the trailing window."""
    # item.timestamp > event.timestamp - window, written so extreme dates cannot overflow
    window = timedelta(seconds=config.FREQUENCY_WINDOW_SECONDS)
    recent_count = sum(1 for item in history if item.timestamp - event.timestamp > -window)

    excess = recent_count - config.FREQUENCY_THRESHOLD
    if excess <= 0:
        return RuleOutcome.abstain("high_frequency")

    return RuleOutcome(
        rule_id="high_frequency",
        fired=True,
        points=excess * config.FREQUENCY_POINTS_PER_EVENT,
        reason=build_reason(
            "high_frequency",
            count=recent_count,
            window=config.FREQUENCY_WINDOW_SECONDS,
        ),
    )


# Evaluation order; reasons are reported in this order.
RULES: Tuple[Rule, ...] = (blacklisted_ip, fast_form_submission, high_frequency)


def evaluate(
    event: Event,
    history: Sequence[Event],
    denylist: Denylist,
    rules: Sequence[Rule] = RULES,
) -> List[RuleOutcome]:
    return [rule(event, history, denylist) for rule in rules]
