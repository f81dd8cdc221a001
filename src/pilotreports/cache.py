"""In-memory TTL cache for report results.

keys are a hash of the report config, so two identical configs share a
result until the ttl runs out.
"""

import hashlib
import json
import logging
import time
from collections.abc import Callable
from typing import Any

from pilotreports.models.report import ReportConfig
from pilotreports.models.result import AggregatedData

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
CLEARABLE = ("query", "cache", "report")


def fingerprint(config: ReportConfig, **extra: Any) -> str:
    """Stable hash of a config (plus anything else that changes the result)."""
    payload = {"config": config.model_dump(mode="json"), **extra}
    json_str = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(json_str.encode()).hexdigest()[:32]


class ResultCache:
    """Report results keyed by config fingerprint."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, AggregatedData]] = {}

    def key_for(self, config: ReportConfig, **extra: Any) -> str:
        return f"report:{fingerprint(config, **extra)}"

    def get(self, key: str) -> AggregatedData | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache miss: %s", key)
            return None

        expires_at, result = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("cache expired: %s", key)
            return None

        logger.debug("cache hit: %s", key)
        return result.model_copy(deep=True, update={"cache_hit": True})

    def set(self, key: str, result: AggregatedData) -> None:
        # copies both ways, callers are free to mutate what they get back
        self._entries[key] = (self._clock() + self.ttl_seconds, result.model_copy(deep=True))

    def clear(self, substrings: tuple[str, ...] = CLEARABLE) -> int:
        """Drop every entry whose key contains one of `substrings`."""
        doomed = [k for k in self._entries if any(s in k for s in substrings)]
        for key in doomed:
            del self._entries[key]
        logger.info("cleared %d cached results", len(doomed))
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
