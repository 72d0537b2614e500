"""Process-local cache for the daily tips.

The cache is an owned object rather than a module global so that each
server (or test) decides its lifetime.  Tips are regenerated when the
calendar day changes or when the number of expenses drifts by more than
``EXPENSE_DRIFT_THRESHOLD`` since the last generation.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, Union

from . import config
from .ingestion import parse_expense_date
from .models import CachedTips, Tip

logger = logging.getLogger(__name__)

EXPENSE_DRIFT_THRESHOLD = 5


class CacheState(str, Enum):
    EMPTY = 'empty'
    FRESH = 'fresh'
    STALE = 'stale'


def should_regenerate(
    cache: Optional[CachedTips],
    current_expense_count: int,
    today: Union[date, datetime],
    tz: Optional[str] = None,
) -> bool:
    if cache is None:
        return True
    tz = tz or config.TIMEZONE
    if parse_expense_date(today, tz) != parse_expense_date(cache.generated_at, tz):
        return True
    return abs(current_expense_count - cache.expense_count) > EXPENSE_DRIFT_THRESHOLD


class TipCache:
    """Holds the most recent tips; regeneration is serialized by a lock."""

    def __init__(self, tz: Optional[str] = None):
        self.tz = tz or config.TIMEZONE
        self._entry: Optional[CachedTips] = None
        self._lock = threading.Lock()

    def peek(self) -> Optional[CachedTips]:
        return self._entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None

    def state(self, current_expense_count: int, today: Union[date, datetime]) -> CacheState:
        entry = self._entry
        if entry is None:
            return CacheState.EMPTY
        if should_regenerate(entry, current_expense_count, today, self.tz):
            return CacheState.STALE
        return CacheState.FRESH

    def store(self, tips: Sequence[Tip], generated_at: datetime, expense_count: int,
              source: str = 'heuristic') -> CachedTips:
        entry = CachedTips(tuple(tips), generated_at, expense_count, source)
        with self._lock:
            self._entry = entry
        return entry

    def get_or_generate(
        self,
        current_expense_count: int,
        now: datetime,
        generate: Callable[[], Tuple[List[Tip], str]],
    ) -> Tuple[CachedTips, bool]:
        """Return ``(entry, cached)``, regenerating when stale.

        The staleness check, the generation and the store happen under one
        lock, so concurrent callers never regenerate twice for the same
        stale entry.
        """
        with self._lock:
            entry = self._entry
            if not should_regenerate(entry, current_expense_count, now, self.tz):
                logger.info("Using cached daily tips (same day, similar expense count)")
                return entry, True
            tips, source = generate()
            entry = CachedTips(tuple(tips), now, current_expense_count, source)
            self._entry = entry
            logger.info("Generated %d fresh daily tips (%s)", len(entry.tips), source)
            return entry, False
