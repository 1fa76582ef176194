"""Aggregator — buckets logged time by category and time window.

Windows are half-open ``[start, end)`` intervals of elapsed time; only the
``today`` preset is calendar-aware. Logs whose project is gone (or not yet
categorized) land in an "unknown" bucket that never contributes to
percentages and never raises.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from portfolio_engine.exceptions import MalformedInputError
from portfolio_engine.models.category import Category
from portfolio_engine.models.records import (
    Project,
    TimeLog,
    parse_projects,
    parse_time_logs,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def aware(now: datetime) -> datetime:
    """Naive ``now`` values are taken as UTC; aware ones keep their zone."""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


# ═══════════════════════════════════════════════════════════════════════════
# Windows
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Window:
    """Half-open interval ``[start, end)``; ``None`` bounds are unbounded."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start is not None and self.end is not None and self.start > self.end:
            raise MalformedInputError(
                f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @property
    def is_all_time(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True

    @classmethod
    def last_days(cls, now: datetime, days: float) -> Window:
        """Trailing ``days`` of elapsed time ending at ``now``."""
        now = aware(now)
        return cls(start=now - timedelta(days=days), end=now)

    @classmethod
    def today(cls, now: datetime) -> Window:
        """The calendar day containing ``now``, in ``now``'s timezone."""
        midnight = aware(now).replace(hour=0, minute=0, second=0, microsecond=0)
        return cls(start=midnight, end=midnight + timedelta(days=1))


ALL_TIME = Window()


# ═══════════════════════════════════════════════════════════════════════════
# Category aggregation
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class Aggregate:
    category_hours: dict[Category, float]
    total_hours: float                  # categorized hours only
    category_percentages: dict[Category, float]
    unknown_hours: float = 0.0          # orphaned / uncategorized logs
    log_count: int = 0                  # every log in the window, orphans included
    orphan_log_ids: list[str] = field(default_factory=list)

    @property
    def raw_hours(self) -> float:
        """All logged hours in the window, including the unknown bucket."""
        return self.total_hours + self.unknown_hours

    def to_dict(self) -> dict[str, Any]:
        return {
            "categoryHours": {c.value: h for c, h in self.category_hours.items()},
            "totalHours": self.total_hours,
            "categoryPercentages": {c.value: p for c, p in self.category_percentages.items()},
            "unknownHours": self.unknown_hours,
            "logCount": self.log_count,
        }


def percentages(category_hours: dict[Category, float]) -> dict[Category, float]:
    """Share of each category in percent; all zeros when nothing is logged."""
    total = sum(category_hours.values())
    if total <= 0:
        return {c: 0.0 for c in Category}
    return {c: category_hours.get(c, 0.0) / total * 100 for c in Category}


def project_categories(projects: Iterable[Project]) -> dict[str, Category]:
    return {p.id: p.category for p in projects if p.category is not None}


def aggregate(
    time_logs: Iterable[Any],
    projects: Iterable[Any],
    window: Window = ALL_TIME,
) -> Aggregate:
    """Sum logged hours per category for logs whose date falls in ``window``."""
    logs = parse_time_logs(time_logs)
    categories = project_categories(parse_projects(projects))
    return aggregate_records(logs, categories, window)


def aggregate_records(
    logs: list[TimeLog],
    categories: dict[str, Category],
    window: Window,
) -> Aggregate:
    category_hours = {c: 0.0 for c in Category}
    unknown_hours = 0.0
    orphans: list[str] = []
    count = 0

    for log in logs:
        if not window.contains(log.date):
            continue
        count += 1
        category = categories.get(log.project_id)
        if category is None:
            unknown_hours += log.duration
            orphans.append(log.id)
            continue
        category_hours[category] += log.duration

    if orphans:
        logger.warning(
            "Aggregator: %d log(s) reference unknown or uncategorized projects (%.1fh)",
            len(orphans), unknown_hours,
        )

    return Aggregate(
        category_hours=category_hours,
        total_hours=sum(category_hours.values()),
        category_percentages=percentages(category_hours),
        unknown_hours=unknown_hours,
        log_count=count,
        orphan_log_ids=orphans,
    )


def category_project_counts(projects: Iterable[Any]) -> dict[Category, int]:
    """Number of projects assigned to each category."""
    counts = {c: 0 for c in Category}
    for project in parse_projects(projects):
        if project.category is not None:
            counts[project.category] += 1
    return counts


# ═══════════════════════════════════════════════════════════════════════════
# Rolling weekly trend
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class TrendBucket:
    label: str
    start: datetime
    end: datetime
    category_hours: dict[Category, float]

    @property
    def total_hours(self) -> float:
        return sum(self.category_hours.values())


def weekly_trend(
    time_logs: Iterable[Any],
    projects: Iterable[Any],
    now: datetime,
    weeks: int = 4,
) -> list[TrendBucket]:
    """Per-category hours in rolling 7-day buckets anchored at ``now``.

    Buckets are returned oldest first ("Week 1" .. "Week N"); the newest
    covers ``[now - 7d, now)``. These are not calendar weeks.
    """
    if weeks < 1:
        raise MalformedInputError(f"weeks must be at least 1, got {weeks}")
    now = aware(now)
    logs = parse_time_logs(time_logs)
    categories = project_categories(parse_projects(projects))

    buckets = []
    for i in range(weeks - 1, -1, -1):
        end = now - timedelta(days=7 * i)
        window = Window(start=end - timedelta(days=7), end=end)
        agg = aggregate_records(logs, categories, window)
        buckets.append(TrendBucket(
            label=f"Week {weeks - i}",
            start=window.start,
            end=window.end,
            category_hours=agg.category_hours,
        ))
    return buckets


# ═══════════════════════════════════════════════════════════════════════════
# Time log statistics
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class TimeLogStats:
    total_hours: float = 0.0
    total_logs: int = 0
    by_activity: dict[str, float] = field(default_factory=dict)
    by_day: dict[str, float] = field(default_factory=dict)
    average_session_length: float = 0.0
    average_energy: float = 0.0
    average_productivity: float = 0.0
    average_enjoyment: float = 0.0
    this_week: float = 0.0
    this_month: float = 0.0


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def time_log_stats(
    time_logs: Iterable[Any],
    now: datetime,
    project_id: Optional[str] = None,
) -> TimeLogStats:
    """Summary statistics over logs, optionally limited to one project.

    Rating averages only count logs that carry the rating.
    """
    logs = parse_time_logs(time_logs)
    if project_id is not None:
        logs = [log for log in logs if log.project_id == project_id]

    week = Window.last_days(now, 7)
    month = Window.last_days(now, 30)
    by_activity: dict[str, float] = defaultdict(float)
    by_day: dict[str, float] = defaultdict(float)
    energy, productivity, enjoyment = [], [], []
    stats = TimeLogStats(total_logs=len(logs))

    for log in logs:
        stats.total_hours += log.duration
        by_activity[log.activity_type or "other"] += log.duration
        by_day[WEEKDAY_NAMES[log.date.weekday()]] += log.duration
        if log.energy_level is not None:
            energy.append(log.energy_level)
        if log.productivity_feeling is not None:
            productivity.append(log.productivity_feeling)
        if log.enjoyment_level is not None:
            enjoyment.append(log.enjoyment_level)
        if week.contains(log.date):
            stats.this_week += log.duration
        if month.contains(log.date):
            stats.this_month += log.duration

    stats.by_activity = dict(by_activity)
    stats.by_day = dict(by_day)
    if logs:
        stats.average_session_length = stats.total_hours / len(logs)
    stats.average_energy = _mean(energy)
    stats.average_productivity = _mean(productivity)
    stats.average_enjoyment = _mean(enjoyment)
    return stats


def historical_weekly_average(total_hours: float, log_count: int) -> float:
    """Average hours per "week" of history, approximating a week as 7 logs."""
    return total_hours / max(1, math.ceil(log_count / 7))
