from __future__ import annotations

from typing import Any, Dict

NO_ISSUES = "No issues"

REASON_TEMPLATES: Dict[str, str] = {
    "blacklisted_ip": "IP address is on the blacklist.",
    "fast_form_submission": "Form submitted impossibly fast: {diff_ms}ms.",
    "high_frequency": "High frequency of events detected: {count} in the last {window} seconds.",
}


def build_reason(rule_id: str, **meta: Any) -> str:
    """Render the human-readable reason for a fired rule."""
    return REASON_TEMPLATES[rule_id].format(**meta)
