from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from fraud_proxy import config
from fraud_proxy.reasons import NO_ISSUES
from fraud_proxy.rules import RuleOutcome


@dataclass(frozen=True)
class ScoreSummary:
    score: int
    flagged: bool
    reasons: Tuple[str, ...]


def aggregate(outcomes: Iterable[RuleOutcome]) -> ScoreSummary:
    """Sum fired rule points and decide the verdict.

    Reasons keep the order the rules were evaluated in and fall back to a
    single placeholder when nothing fired.
    """
    score = 0
    reasons = []
    for outcome in outcomes:
        if not outcome.fired:
            continue
        score += outcome.points
        if outcome.reason:
            reasons.append(outcome.reason)

    return ScoreSummary(
        score=score,
        flagged=score > config.FLAG_THRESHOLD,
        reasons=tuple(reasons) if reasons else (NO_ISSUES,),
    )
