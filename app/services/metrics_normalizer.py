"""
Metrics Normalizer.

Turns a tabular analytics report (column headers + rows) into one metrics
bag per day, keyed by ISO date string. Column order is not guaranteed by
the API, so every column is resolved by name before any row is read.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

from app.models.analytics import METRIC_FIELDS
from app.services.metrics_fetcher import AnalyticsReport
from app.utils.errors import MissingColumnsError
from app.utils.logger import logger

DATE = "date"

# API column name -> internal metric name
COLUMN_ALIASES = {
    "day": DATE,
    "date": DATE,
    "estimatedMinutesWatched": "watchTimeMinutes",
}
COLUMN_ALIASES.update({name: name for name in METRIC_FIELDS})

# Internal name -> name reported in errors (what the API calls it)
_REPORTED_NAMES = {DATE: "day"}

DEFAULT_REQUIRED = (DATE,)

Number = Union[int, float]


@dataclass
class ColumnMap:
    """Internal column name -> positional index in the source rows."""

    indexes: Dict[str, int]

    @classmethod
    def from_headers(cls, headers: Sequence[str], required: Iterable[str] = DEFAULT_REQUIRED) -> "ColumnMap":
        indexes = {}
        for position, header in enumerate(headers):
            name = COLUMN_ALIASES.get(header)
            if name is not None and name not in indexes:
                indexes[name] = position

        missing = [_REPORTED_NAMES.get(name, name) for name in required if name not in indexes]
        if missing:
            raise MissingColumnsError(missing)
        return cls(indexes)

    def value(self, row: Sequence, name: str):
        position = self.indexes.get(name)
        if position is None or position >= len(row):
            return None
        return row[position]

    @property
    def metric_names(self) -> List[str]:
        return [name for name in self.indexes if name != DATE]


def to_number(value) -> Optional[Number]:
    """Coerce an API cell to int/float. None, blanks and junk become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return int(number) if number.is_integer() else number


def to_date_key(value) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return None
    text = str(value).strip()
    return text[:10] if text else None


def normalize_row(row: Sequence, columns: ColumnMap) -> Dict[str, Number]:
    metrics: Dict[str, Number] = {}
    for name in columns.metric_names:
        number = to_number(columns.value(row, name))
        # Not returned this call: leave the field out rather than store null
        if number is not None:
            metrics[name] = number

    minutes = metrics.get("watchTimeMinutes")
    if minutes is not None:
        metrics["watchTimeHours"] = minutes / 60

    gained = metrics.get("subscribersGained")
    lost = metrics.get("subscribersLost")
    if gained is not None or lost is not None:
        metrics["netSubscribers"] = (gained or 0) - (lost or 0)

    return metrics


def normalize_report(report: AnalyticsReport, required: Iterable[str] = DEFAULT_REQUIRED) -> Dict[str, Dict[str, Number]]:
    """
    Returns {YYYY-MM-DD: metrics} in source order. Raises MissingColumnsError
    listing every missing required column before reading any row.
    """
    columns = ColumnMap.from_headers(report.column_headers, required)

    days: Dict[str, Dict[str, Number]] = {}
    for row in report.rows:
        day = to_date_key(columns.value(row, DATE))
        if not day:
            logger.warning(f"Skipping analytics row without a date: {row}")
            continue
        days.setdefault(day, {}).update(normalize_row(row, columns))
    return days
