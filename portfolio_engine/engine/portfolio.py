"""Portfolio snapshot — recomputed on demand from the full record set.

Nothing is maintained incrementally: every call re-aggregates all time logs.
That is fine at personal-scale volumes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from portfolio_engine.engine.aggregator import (
    ALL_TIME,
    aggregate_records,
    aware,
    category_project_counts,
    project_categories,
)
from portfolio_engine.engine.balance import BalanceScore, score, validate_target
from portfolio_engine.models.category import Category
from portfolio_engine.models.records import ProjectStatus, parse_projects, parse_time_logs

logger = logging.getLogger(__name__)


@dataclass
class PortfolioSnapshot:
    target_allocation: dict[Category, float]
    actual_allocation: dict[Category, float]
    category_hours: dict[Category, float]
    total_hours: float
    balance: BalanceScore
    last_calculated: datetime
    active_projects: int = 0
    project_counts: dict[Category, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetBalance": {c.value: v for c, v in self.target_allocation.items()},
            "actualBalance": {c.value: v for c, v in self.actual_allocation.items()},
            "categoryHours": {c.value: v for c, v in self.category_hours.items()},
            "totalHours": self.total_hours,
            "balanceScore": self.balance.to_dict(),
            "activeProjects": self.active_projects,
            "projectCounts": {c.value: v for c, v in self.project_counts.items()},
            "lastCalculated": self.last_calculated.isoformat(),
        }


def recompute(
    time_logs: Iterable[Any],
    projects: Iterable[Any],
    now: datetime,
    target: Optional[Mapping[Any, Any]] = None,
) -> PortfolioSnapshot:
    """Aggregate all-time hours and score them against ``target``.

    The target is validated before anything is aggregated.
    """
    now = aware(now)
    target_alloc = validate_target(target)
    logs = parse_time_logs(time_logs)
    project_list = parse_projects(projects)

    totals = aggregate_records(logs, project_categories(project_list), ALL_TIME)
    balance = score(totals.category_percentages, target_alloc, now=now)

    snapshot = PortfolioSnapshot(
        target_allocation=target_alloc,
        actual_allocation=totals.category_percentages,
        category_hours=totals.category_hours,
        total_hours=totals.total_hours,
        balance=balance,
        last_calculated=now,
        active_projects=sum(1 for p in project_list if p.status != ProjectStatus.COMPLETED),
        project_counts=category_project_counts(project_list),
    )
    logger.debug(
        "Portfolio recomputed: %.1fh, score %.1f (%s)",
        snapshot.total_hours, balance.score, balance.grade,
    )
    return snapshot
