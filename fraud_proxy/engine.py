"""Fraud analysis entry point.

``FraudEngine.analyze`` is called once per decoded event by the HTTP layer:
append to the session history, read it back, run every rule, aggregate, and
hand the result upward.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fraud_proxy.denylist import Denylist
from fraud_proxy.events import Event, FraudCheckResult
from fraud_proxy.rules import RULES, Rule, evaluate
from fraud_proxy.scoring import aggregate
from fraud_proxy.storage import SessionHistoryStore

logger = logging.getLogger(__name__)


class FraudEngine:
    def __init__(
        self,
        denylist: Denylist,
        store: Optional[SessionHistoryStore] = None,
        rules: Sequence[Rule] = RULES,
    ) -> None:
        self.denylist = denylist
        self.store = store if store is not None else SessionHistoryStore()
        self.rules = tuple(rules)
        self._metrics_lock = threading.Lock()
        self._events_seen = 0
        self._events_flagged = 0
        self._rule_totals: defaultdict[str, int] = defaultdict(int)

    def analyze(self, event: Event) -> FraudCheckResult:
        """Score one event against its session's history."""
        history = self.store.append_and_snapshot(event.session_id, event)
        outcomes = evaluate(event, history, self.denylist, self.rules)
        summary = aggregate(outcomes)

        result = FraudCheckResult(
            session_id=event.session_id,
            fraud_score=summary.score,
            flagged=summary.flagged,
            reasons=summary.reasons,
            check_timestamp=datetime.now(timezone.utc),
        )

        fired = [outcome.rule_id for outcome in outcomes if outcome.fired]
        with self._metrics_lock:
            self._events_seen += 1
            if result.flagged:
                self._events_flagged += 1
            for rule_id in fired:
                self._rule_totals[rule_id] += 1

        if "blacklisted_ip" in fired:
            logger.warning(
                "denylisted IP %s in session %s", event.ip_address, event.session_id
            )
        logger.info(
            json.dumps(
                {
                    "sessionId": result.session_id,
                    "fraudScore": result.fraud_score,
                    "flagged": result.flagged,
                    "reasons": list(result.reasons),
                },
                sort_keys=True,
            )
        )
        return result

    def session_events(self, session_id: str) -> Tuple[Event, ...]:
        return self.store.snapshot(session_id)

    def run_maintenance(self) -> List[str]:
        """Apply the store's idle-session eviction."""
        evicted = self.store.evict_idle()
        if evicted:
            logger.info("evicted %d idle sessions", len(evicted))
        return evicted

    def metrics_snapshot(self) -> Dict[str, Any]:
        """Expose counters so operators can see what the engine is doing."""
        with self._metrics_lock:
            snapshot: Dict[str, Any] = {
                "events_ingested": self._events_seen,
                "events_flagged": self._events_flagged,
                "rules_fired": dict(self._rule_totals),
            }
        snapshot["sessions_tracked"] = self.store.session_count()
        snapshot["events_stored"] = self.store.event_count()
        return snapshot
