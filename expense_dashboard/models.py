"""Value types for expenses and everything derived from them.

Records are immutable; every aggregation step builds new objects rather
than touching its input.  ``to_dict`` methods produce the camelCase wire
shape consumed by the presentation layer and the JSON endpoints.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

UNCATEGORIZED = 'Uncategorized'


@dataclass(frozen=True)
class ExpenseRecord:
    id: str
    comment: str
    amount: float
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    # None when the source date could not be parsed
    date: Optional[date] = None

    @property
    def category_label(self) -> str:
        return self.category_name or UNCATEGORIZED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'comment': self.comment,
            'amount': self.amount,
            'category': {'id': self.category_id, 'name': self.category_name},
            'date': self.date.isoformat() if self.date else None,
        }


class Granularity(str, Enum):
    DAY = 'day'
    WEEK = 'week'
    MONTH = 'month'
    YEAR = 'year'

    @classmethod
    def parse(cls, value: Any) -> 'Granularity':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown granularity '{value}'") from None


@dataclass(frozen=True)
class Period:
    granularity: Granularity
    key: str
    label: str
    start: date
    end: date

    @property
    def days(self) -> int:
        if self.granularity is Granularity.DAY:
            return 1
        if self.granularity is Granularity.WEEK:
            return 7
        if self.granularity is Granularity.MONTH:
            return calendar.monthrange(self.start.year, self.start.month)[1]
        return 366 if calendar.isleap(self.start.year) else 365

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            'granularity': self.granularity.value,
            'key': self.key,
            'label': self.label,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }


@dataclass(frozen=True)
class Bucket:
    period: Period
    expenses: Tuple[ExpenseRecord, ...]

    @property
    def key(self) -> str:
        return self.period.key

    def __len__(self) -> int:
        return len(self.expenses)


@dataclass(frozen=True)
class BucketSet:
    """Buckets in ascending key order plus the records that had no date."""

    granularity: Granularity
    buckets: Tuple[Bucket, ...]
    excluded: Tuple[ExpenseRecord, ...] = ()

    def get(self, key: str) -> Optional[Bucket]:
        for bucket in self.buckets:
            if bucket.key == key:
                return bucket
        return None

    def keys(self) -> List[str]:
        return [bucket.key for bucket in self.buckets]

    def __iter__(self):
        return iter(self.buckets)

    def __len__(self) -> int:
        return len(self.buckets)


@dataclass(frozen=True)
class CategoryBreakdown:
    name: str
    total: float
    count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'total': self.total,
            'count': self.count,
            'percentage': self.percentage,
        }


@dataclass(frozen=True)
class AggregatedPeriod:
    total: float
    count: int
    average_per_day: float
    categories: Tuple[CategoryBreakdown, ...] = ()
    comparison_to_previous: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'total': self.total,
            'count': self.count,
            'averagePerDay': self.average_per_day,
            'categories': [c.to_dict() for c in self.categories],
        }
        if self.comparison_to_previous is not None:
            payload['comparisonToPrevious'] = self.comparison_to_previous
        return payload


class TipType(str, Enum):
    INSIGHT = 'insight'
    WARNING = 'warning'
    OPPORTUNITY = 'opportunity'
    ACHIEVEMENT = 'achievement'


class TipImpact(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def rank(self) -> int:
        return {'high': 3, 'medium': 2, 'low': 1}[self.value]


@dataclass(frozen=True)
class Tip:
    id: str
    type: TipType
    title: str
    message: str
    impact: TipImpact
    actionable: bool
    category: Optional[str] = None
    savings: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'id': self.id,
            'type': self.type.value,
            'title': self.title,
            'message': self.message,
            'impact': self.impact.value,
            'actionable': self.actionable,
        }
        if self.category is not None:
            payload['category'] = self.category
        if self.savings is not None:
            payload['savings'] = self.savings
        return payload


@dataclass(frozen=True)
class CachedTips:
    tips: Tuple[Tip, ...]
    generated_at: datetime
    expense_count: int
    source: str = 'heuristic'


@dataclass
class IngestionResult:
    """Outcome of normalizing raw rows from the external store."""

    expenses: Tuple[ExpenseRecord, ...] = ()
    issues: List[str] = field(default_factory=list)
    unparseable_dates: int = 0
    rejected: int = 0
