"""Time-windowed memo of ObjectSource queries.

A scan burst asks for the same five categories several times; enumerating
world objects is the expensive part, so each category is cached for
`refresh_interval` seconds.  A refresh always replaces the whole category.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from scanner.models import WorldObject

log = logging.getLogger(__name__)


class ObjectCache:
    def __init__(
        self,
        source,
        refresh_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._source = source
        self._refresh_interval = refresh_interval
        self._clock = clock
        self._lock = threading.Lock()
        # category -> (fetched_at, objects); fetched_at None means "stale"
        self._entries: dict[str, tuple[Optional[float], list[WorldObject]]] = {}

    def get_objects(self, category: str) -> list[WorldObject]:
        """Return the cached objects for *category*, refreshing when expired.

        Source failures are logged and the last good list (or an empty list)
        is returned instead.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(category)
            if entry is not None:
                fetched_at, objects = entry
                if fetched_at is not None and now - fetched_at < self._refresh_interval:
                    return list(objects)

            try:
                fresh = list(self._source.get_objects(category))
            except Exception as e:
                last_good = entry[1] if entry is not None else []
                log.warning(
                    f"Object query for '{category}' failed ({e}); "
                    f"using {len(last_good)} cached objects"
                )
                return list(last_good)

            self._entries[category] = (now, fresh)
            log.debug(f"Cache refreshed for '{category}': {len(fresh)} objects")
            return list(fresh)

    def invalidate(self, category: Optional[str] = None) -> None:
        """Force a re-query on next access (all categories by default).

        The last good content is kept as the fallback for source failures.
        """
        with self._lock:
            targets = [category] if category is not None else list(self._entries)
            for cat in targets:
                if cat in self._entries:
                    self._entries[cat] = (None, self._entries[cat][1])

    def status(self) -> dict[str, dict]:
        now = self._clock()
        with self._lock:
            return {
                cat: {
                    "count": len(objects),
                    "age_s": None if fetched_at is None else now - fetched_at,
                }
                for cat, (fetched_at, objects) in self._entries.items()
            }

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval
