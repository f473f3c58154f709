from __future__ import annotations

import os
from typing import Optional


def _optional_int(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    value = int(raw)
    return value if value > 0 else None


# Rule constants. These are fixed for the process; only operational knobs
# below come from the environment.
DENYLIST_PENALTY = 50
FAST_SUBMISSION_THRESHOLD_MS = 1000
FAST_SUBMISSION_PENALTY = 40
PAGE_LOAD_METADATA_KEY = "pageLoadTimestamp"
FREQUENCY_WINDOW_SECONDS = 5
FREQUENCY_THRESHOLD = 10
FREQUENCY_POINTS_PER_EVENT = 5
FLAG_THRESHOLD = 60

# Static denylist. Comma separated; a file with one IP per line can be added on top.
DEFAULT_DENYLIST = "1.1.1.1,2.2.2.2"
DENYLIST_ENV = "FRAUD_PROXY_DENYLIST"
DENYLIST_FILE_ENV = "FRAUD_PROXY_DENYLIST_FILE"

# Logging: console always, rotating file only when a path is configured.
LOG_PATH = os.environ.get("FRAUD_PROXY_LOG") or None
LOG_LEVEL = os.environ.get("FRAUD_PROXY_LOG_LEVEL", "INFO").upper()
LOG_MAX_BYTES = int(os.environ.get("FRAUD_PROXY_LOG_MAX_BYTES", str(5 * 1024 * 1024)))
LOG_BACKUPS = int(os.environ.get("FRAUD_PROXY_LOG_BACKUPS", "1"))

# Session retention. Unset means histories grow for the lifetime of the process.
SESSION_MAX_EVENTS = _optional_int("FRAUD_PROXY_SESSION_MAX_EVENTS")
SESSION_IDLE_TTL_SECONDS = _optional_int("FRAUD_PROXY_SESSION_IDLE_TTL")
MAINTENANCE_INTERVAL_SECONDS = int(os.environ.get("FRAUD_PROXY_MAINTENANCE_INTERVAL", "30"))

PORT = int(os.environ.get("PORT", "8080"))
