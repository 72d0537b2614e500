"""AI generated daily tips with a heuristic fallback.

The provider receives a compact summary of the expense list and is asked
for exactly three tips as a JSON array.  Whatever comes back is validated
at this boundary: entries that are not objects are dropped and unknown
enum values are normalized, so only well-formed :class:`Tip` values leave
this module.  Any provider failure (missing credential, network error,
timeout, non-200 status, unusable body) falls back to
:func:`expense_dashboard.insights.generate_tips`.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import requests
from requests.exceptions import RequestException, Timeout

from . import config
from .aggregation import monthly_totals
from .errors import TipProviderError
from .ingestion import parse_expense_date
from .insights import MAX_TIPS, generate_tips
from .models import ExpenseRecord, Tip, TipImpact, TipType

logger = logging.getLogger(__name__)

RECENT_EXPENSES = 20
DEFAULT_TITLE = 'Financial Insight'
DEFAULT_MESSAGE = 'Review your spending patterns for optimization opportunities.'

SOURCE_AI = 'ai'
SOURCE_HEURISTIC = 'heuristic'

_FENCE_RE = re.compile(r'```(?:json)?\s*', re.IGNORECASE)
_DECODER = json.JSONDecoder()


def _as_datetime(now: Union[date, datetime]) -> datetime:
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time.min, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Request payload
# ---------------------------------------------------------------------------


def build_expense_summary(
    expenses: Sequence[ExpenseRecord],
    as_of: Union[date, datetime],
    tz: Optional[str] = None,
) -> Dict[str, Any]:
    today = parse_expense_date(as_of, tz or config.TIMEZONE) or date.today()
    categories: List[str] = []
    for expense in expenses:
        if expense.category_label not in categories:
            categories.append(expense.category_label)
    return {
        'totalExpenses': len(expenses),
        'currentMonth': today.month,
        'categories': categories,
        'recentExpenses': [e.to_dict() for e in list(expenses)[-RECENT_EXPENSES:]],
        'monthlyTotals': monthly_totals(expenses),
    }


def build_prompt(summary: Dict[str, Any]) -> str:
    return (
        "Generate exactly 3 daily financial tips based on this expense data. "
        "Be concise but actionable.\n\n"
        f"Expense data: {json.dumps(summary, indent=2)}\n\n"
        "Return ONLY a JSON array with exactly 3 objects:\n"
        "[{\n"
        '  "id": "unique-id",\n'
        '  "type": "insight|warning|opportunity|achievement",\n'
        '  "title": "Brief title (max 50 chars)",\n'
        '  "message": "Actionable advice (max 150 chars)",\n'
        '  "impact": "high|medium|low",\n'
        '  "actionable": true/false,\n'
        '  "category": "optional category",\n'
        '  "savings": optional_number\n'
        "}]\n\n"
        "Focus on the most impactful insights. Keep messages concise and actionable."
    )


# ---------------------------------------------------------------------------
# Response validation
# ---------------------------------------------------------------------------


def extract_tip_payload(text: str) -> List[Any]:
    """Pull the JSON array out of free-form provider text."""
    if not isinstance(text, str) or not text.strip():
        raise TipProviderError("Empty response from tip provider")
    cleaned = _FENCE_RE.sub('', text.strip()).strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return parsed

    # Arrays embedded in prose; prefer the first one holding objects
    fallback = None
    start = cleaned.find('[')
    while start != -1:
        try:
            parsed, _ = _DECODER.raw_decode(cleaned, start)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            if any(isinstance(item, dict) for item in parsed):
                return parsed
            if fallback is None:
                fallback = parsed
        start = cleaned.find('[', start + 1)
    if fallback is not None:
        return fallback
    raise TipProviderError("No JSON array found in tip provider response")


def _enum_value(enum_cls, value: Any, default):
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    return default


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _savings(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def normalize_tip(raw: Any, index: int, now: Union[date, datetime]) -> Optional[Tip]:
    """Validate one provider entry; ``None`` when it is not an object."""
    if not isinstance(raw, dict):
        return None
    raw_id = raw.get('id')
    if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) and str(raw_id).strip():
        tip_id = str(raw_id).strip()
    else:
        stamp = int(_as_datetime(now).timestamp() * 1000)
        tip_id = f"daily-tip-{stamp}-{index}"
    return Tip(
        id=tip_id,
        type=_enum_value(TipType, raw.get('type'), TipType.INSIGHT),
        title=_text(raw.get('title')) or DEFAULT_TITLE,
        message=_text(raw.get('message')) or DEFAULT_MESSAGE,
        impact=_enum_value(TipImpact, raw.get('impact'), TipImpact.MEDIUM),
        actionable=bool(raw.get('actionable')),
        category=_text(raw.get('category')),
        savings=_savings(raw.get('savings')),
    )


def normalize_tips(items: Sequence[Any], now: Union[date, datetime]) -> List[Tip]:
    tips = []
    for index, raw in enumerate(list(items)[:MAX_TIPS]):
        tip = normalize_tip(raw, index, now)
        if tip is None:
            logger.warning("Dropping malformed tip entry at position %d", index)
            continue
        tips.append(tip)
    if not tips:
        raise TipProviderError("Tip provider returned no usable tips")
    return tips


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class AnthropicTipProvider:
    """Calls the Anthropic messages API for daily tips."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise TipProviderError("Missing API key for tip provider")
        self.api_key = api_key
        self.model = model or config.AI_MODEL
        self.timeout = timeout if timeout is not None else config.AI_TIMEOUT
        self.max_tokens = max_tokens or config.AI_MAX_TOKENS
        self.url = url or config.AI_API_URL
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> Optional['AnthropicTipProvider']:
        api_key = config.get_api_key()
        if api_key is None:
            return None
        return cls(api_key)

    def _post(self, prompt: str) -> Dict[str, Any]:
        headers = {
            'Content-Type': 'application/json',
            'x-api-key': self.api_key,
            'anthropic-version': config.AI_API_VERSION,
        }
        body = {
            'model': self.model,
            'max_tokens': self.max_tokens,
            'messages': [{'role': 'user', 'content': prompt}],
        }
        try:
            resp = self.session.post(self.url, headers=headers, json=body, timeout=self.timeout)
        except Timeout as exc:
            raise TipProviderError(f"Tip provider timed out after {self.timeout}s") from exc
        except RequestException as exc:
            raise TipProviderError(f"Network error while calling tip provider: {exc}") from exc

        if resp.status_code != 200:
            raise TipProviderError(f"Tip provider returned HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as exc:
            raise TipProviderError("Tip provider returned invalid JSON") from exc

    def generate(
        self,
        expenses: Sequence[ExpenseRecord],
        as_of: Union[date, datetime],
        tz: Optional[str] = None,
    ) -> List[Tip]:
        data = self._post(build_prompt(build_expense_summary(expenses, as_of, tz)))
        content = data.get('content') if isinstance(data, dict) else None
        text = None
        if isinstance(content, list) and content and isinstance(content[0], dict):
            text = content[0].get('text')
        if not text:
            raise TipProviderError("No content in tip provider response")
        return normalize_tips(extract_tip_payload(text), as_of)


def generate_daily_tips(
    expenses: Sequence[ExpenseRecord],
    now: Union[date, datetime],
    provider=None,
    tz: Optional[str] = None,
) -> Tuple[List[Tip], str]:
    """Return ``(tips, source)``; provider failures fall back to heuristics.

    ``tz`` decides which calendar month ``now`` falls in, for both the
    provider summary and the heuristic rules.
    """
    tz = tz or config.TIMEZONE
    if provider is None:
        logger.info("No tip provider configured, using pattern analysis")
        return generate_tips(expenses, now, tz), SOURCE_HEURISTIC
    try:
        tips = provider.generate(expenses, now, tz)
    except TipProviderError as exc:
        logger.warning("Tip provider failed (%s); falling back to pattern analysis", exc)
    except Exception:
        logger.exception("Unexpected tip provider error; falling back to pattern analysis")
    else:
        logger.info("Generated %d AI tips", len(tips))
        return tips, SOURCE_AI
    return generate_tips(expenses, now, tz), SOURCE_HEURISTIC
