from __future__ import annotations

import os
from typing import Iterable, Iterator, List, Optional

from fraud_proxy import config


class Denylist:
    """Immutable set of flagged IP addresses, built once before serving.

    Nothing mutates it after construction, so concurrent readers need no lock.
    """

    __slots__ = ("_ips",)

    def __init__(self, ips: Iterable[str] = ()) -> None:
        object.__setattr__(self, "_ips", frozenset(ip.strip() for ip in ips if ip and ip.strip()))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Denylist is read-only")

    def contains(self, ip_address: str) -> bool:
        return ip_address in self._ips

    def __contains__(self, ip_address: object) -> bool:
        return ip_address in self._ips

    def __len__(self) -> int:
        return len(self._ips)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ips))

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Denylist":
        """Build from FRAUD_PROXY_DENYLIST and, if set, FRAUD_PROXY_DENYLIST_FILE."""
        env = os.environ if environ is None else environ
        raw = env.get(config.DENYLIST_ENV, config.DEFAULT_DENYLIST)
        ips: List[str] = [ip.strip() for ip in raw.split(",") if ip.strip()]

        path = env.get(config.DENYLIST_FILE_ENV)
        if path:
            ips.extend(_read_denylist_file(path))
        return cls(ips)


def _read_denylist_file(path: str) -> List[str]:
    ips: List[str] = []
    with open(path, "r", encoding="utf-8") as handle:
        for line in handle:
            entry = line.split("#", 1)[0].strip()
            if entry:
                ips.append(entry)
    return ips
