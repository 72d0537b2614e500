"""Request handling for the daily tips feature.

``TipsService.handle`` is framework independent: it takes the decoded
request body and returns ``(status, payload)`` so that the Flask route
and the Streamlit panel share one code path.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from . import config
from .ai_tips import AnthropicTipProvider, generate_daily_tips
from .errors import ExpenseValidationError
from .ingestion import normalize_expenses
from .tip_cache import TipCache

logger = logging.getLogger(__name__)

INVALID_EXPENSES_MESSAGE = 'Invalid expenses data'
INTERNAL_ERROR_MESSAGE = 'Failed to generate daily tips'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_tips_request(body: Any) -> list:
    if not isinstance(body, Mapping):
        raise ExpenseValidationError(INVALID_EXPENSES_MESSAGE)
    expenses = body.get('expenses')
    if not isinstance(expenses, list):
        raise ExpenseValidationError(INVALID_EXPENSES_MESSAGE)
    return expenses


class TipsService:
    def __init__(
        self,
        cache: Optional[TipCache] = None,
        provider_factory: Optional[Callable[[], Any]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        tz: Optional[str] = None,
    ):
        self.tz = tz or config.TIMEZONE
        self.cache = cache or TipCache(self.tz)
        self.provider_factory = provider_factory or AnthropicTipProvider.from_env
        self.clock = clock or _utc_now

    def handle(self, body: Any) -> Tuple[int, Dict[str, Any]]:
        try:
            rows = validate_tips_request(body)
        except ExpenseValidationError as exc:
            return 400, {'error': str(exc)}

        try:
            return 200, self._tips_payload(rows)
        except Exception:
            logger.exception("Error generating daily tips")
            return 500, {'error': INTERNAL_ERROR_MESSAGE}

    def _tips_payload(self, rows: list) -> Dict[str, Any]:
        logger.info("Analyzing %d expenses for daily tips", len(rows))
        now = self.clock()
        ingested = normalize_expenses(rows, self.tz)

        entry, cached = self.cache.get_or_generate(
            len(rows),
            now,
            lambda: generate_daily_tips(ingested.expenses, now, self.provider_factory(), self.tz),
        )
        return {
            'tips': [tip.to_dict() for tip in entry.tips],
            'timestamp': entry.generated_at.isoformat(),
            'expenseCount': len(rows),
            'cached': cached,
            'aiEnabled': config.ai_enabled(),
        }
