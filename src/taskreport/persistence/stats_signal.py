"""Cache-invalidation signal for downstream aggregate statistics."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from taskreport.core.exceptions import CacheError
from taskreport.core.protocols import ICacheBackend

logger = logging.getLogger(__name__)

UPDATED_MARKER_KEY = "ranking:updated"
DEFAULT_STATS_KEYS = ("ranking:monthly", "ranking:yearly", "stats:daily")
MARKER_TTL = 7 * 24 * 3600


class StatsInvalidator:
    """Drops cached aggregates and bumps the ``ranking:updated`` marker.

    Consumers poll the marker (or subscribe to the key) and recompute when it
    changes. Cache failures are logged, never raised: the upload itself has
    already been committed.
    """

    def __init__(self, cache: ICacheBackend, keys: Sequence[str] = DEFAULT_STATS_KEYS) -> None:
        self._cache = cache
        self._keys = tuple(keys)

    def signal(self) -> None:
        try:
            self._cache.delete(*self._keys)
            self._cache.setex(UPDATED_MARKER_KEY, MARKER_TTL, datetime.now(timezone.utc).isoformat())
        except CacheError as exc:
            logger.warning("Statistics invalidation failed: %s", exc)
