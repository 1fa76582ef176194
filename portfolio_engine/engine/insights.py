"""Insight Generator — fixed battery of pattern checks over activity records.

Every rule is a pure function of an ``InsightContext`` (records plus the
precomputed aggregates and a fixed ``now``) and yields at most one insight.
Rules never depend on each other; ``generate`` runs them in ``RULES`` order
so the output list is stable.

    1. overconcentration     balance      medium
    2. missing category      suggestion   low
    3. category neglect      pattern      medium
    4. balanced portfolio    achievement  medium   (valid 7 days)
    5. dormant projects      alert        high
    6. low-activity week     pattern      medium
    7. journaling gap        suggestion   low
    8. milestone celebration achievement  medium   (valid 3 days)

Rule 1 is evaluated per category; the first overconcentrated category found
in category order is reported (only one category can exceed 70%).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from portfolio_engine.config.settings import (
    DORMANT_PROJECT_DAYS,
    NEGLECT_WINDOW_DAYS,
    RECENT_WINDOW_DAYS,
)
from portfolio_engine.engine.aggregator import (
    ALL_TIME,
    Aggregate,
    Window,
    aggregate_records,
    project_categories,
    aware,
    historical_weekly_average,
)
from portfolio_engine.models.category import (
    COMPLEMENTARY_CATEGORIES,
    Category,
    get_category_info,
    label,
)
from portfolio_engine.models.insight import Insight, InsightPriority, InsightType
from portfolio_engine.models.records import (
    EntryType,
    JournalEntry,
    Project,
    ProjectStatus,
    TimeLog,
    parse_journal_entries,
    parse_projects,
    parse_time_logs,
)

logger = logging.getLogger(__name__)

# Rule gates
OVERCONCENTRATION_PERCENT = 70.0
OVERCONCENTRATION_MIN_HOURS = 10.0
MISSING_MIN_HOURS = 5.0
NEGLECT_MIN_HOURS = 10.0
BALANCED_BAND = (15.0, 35.0)
BALANCED_MIN_CATEGORIES = 3
BALANCED_MIN_HOURS = 20.0
BALANCED_VALID_DAYS = 7
LOW_ACTIVITY_HOURS = 5.0
LOW_ACTIVITY_MIN_LOGS = 10
JOURNAL_GAP_MIN_ENTRIES = 5
MILESTONE_VALID_DAYS = 3


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


def _join_labels(categories: list[Category]) -> str:
    return " and ".join(label(c) for c in categories)


# ═══════════════════════════════════════════════════════════════════════════
# Context
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class InsightContext:
    now: datetime
    time_logs: list[TimeLog]
    projects: list[Project]
    journal_entries: list[JournalEntry]
    all_time: Aggregate
    recent: Aggregate        # trailing RECENT_WINDOW_DAYS
    neglect: Aggregate       # trailing NEGLECT_WINDOW_DAYS

    @property
    def recent_window(self) -> Window:
        return Window.last_days(self.now, RECENT_WINDOW_DAYS)


def build_context(
    time_logs: Iterable[Any],
    projects: Iterable[Any],
    journal_entries: Iterable[Any],
    now: datetime,
) -> InsightContext:
    """Validate the record sets and precompute the windowed aggregates."""
    now = aware(now)
    logs = parse_time_logs(time_logs)
    project_list = parse_projects(projects)
    entries = parse_journal_entries(journal_entries)
    categories = project_categories(project_list)

    return InsightContext(
        now=now,
        time_logs=logs,
        projects=project_list,
        journal_entries=entries,
        all_time=aggregate_records(logs, categories, ALL_TIME),
        recent=aggregate_records(logs, categories, Window.last_days(now, RECENT_WINDOW_DAYS)),
        neglect=aggregate_records(logs, categories, Window.last_days(now, NEGLECT_WINDOW_DAYS)),
    )


# ═══════════════════════════════════════════════════════════════════════════
# Rules
# ═══════════════════════════════════════════════════════════════════════════

def overconcentration(ctx: InsightContext) -> Optional[Insight]:
    total = ctx.all_time.total_hours
    if total <= OVERCONCENTRATION_MIN_HOURS:
        return None

    for category in Category:
        percentage = ctx.all_time.category_percentages[category]
        if percentage <= OVERCONCENTRATION_PERCENT:
            continue
        info = get_category_info(category)
        first, second = COMPLEMENTARY_CATEGORIES[category]
        return Insight(
            type=InsightType.BALANCE,
            title=f"{info.icon} Portfolio Heavily Weighted Toward {info.label}",
            description=(
                f"You're spending {percentage:.0f}% of your time on {info.label} projects. "
                f"Consider adding {label(first)} or {label(second)} activities to rebalance."
            ),
            confidence=0.85,
            priority=InsightPriority.MEDIUM,
            actionable=True,
            suggested_actions=[
                "Review your portfolio balance",
                f"Start a {label(first)} or {label(second)} project",
                "Set target percentages for each perspective",
            ],
            based_on={
                "category": category.value,
                "percentage": percentage,
                "totalHours": total,
                "rebalanceToward": [first.value, second.value],
            },
            generated_at=ctx.now,
        )
    return None


def missing_category(ctx: InsightContext) -> Optional[Insight]:
    total = ctx.all_time.total_hours
    if total <= MISSING_MIN_HOURS:
        return None

    missing = [c for c in Category if ctx.all_time.category_percentages[c] == 0]
    if not missing:
        return None

    names = _join_labels(missing)
    pitches = ", or ".join(get_category_info(c).pitch for c in missing)
    return Insight(
        type=InsightType.SUGGESTION,
        title=f"Missing {_plural(len(missing), 'Perspective')}: {names}",
        description=(
            f"You haven't logged any {names} activities yet. "
            f"Consider starting a project to {pitches}."
        ),
        confidence=0.7,
        priority=InsightPriority.LOW,
        actionable=True,
        suggested_actions=[
            f"Create a {label(missing[0])} project",
            *(f"{label(c)} ideas: {get_category_info(c).examples}" for c in missing),
        ],
        based_on={
            "missingCategories": [c.value for c in missing],
            "totalHours": total,
        },
        generated_at=ctx.now,
    )


def category_neglect(ctx: InsightContext) -> Optional[Insight]:
    total = ctx.all_time.total_hours
    if total <= NEGLECT_MIN_HOURS:
        return None

    neglected = [
        c for c in Category
        if ctx.all_time.category_hours[c] > 0 and ctx.neglect.category_hours[c] == 0
    ]
    if not neglected:
        return None

    names = _join_labels(neglected)
    return Insight(
        type=InsightType.PATTERN,
        title=f"Neglected {_plural(len(neglected), 'Perspective')}: {names}",
        description=(
            f"You haven't logged any {names} time in the last {NEGLECT_WINDOW_DAYS} days, "
            "even though it is part of your portfolio."
        ),
        confidence=0.75,
        priority=InsightPriority.MEDIUM,
        actionable=True,
        suggested_actions=[
            f"Schedule a session for your {label(neglected[0])} projects",
            "Decide whether these projects should be paused",
        ],
        based_on={
            "neglectedCategories": [c.value for c in neglected],
            "allTimeHours": {c.value: ctx.all_time.category_hours[c] for c in neglected},
            "windowDays": NEGLECT_WINDOW_DAYS,
        },
        generated_at=ctx.now,
    )


def balanced_portfolio(ctx: InsightContext) -> Optional[Insight]:
    total = ctx.all_time.total_hours
    if total <= BALANCED_MIN_HOURS:
        return None

    low, high = BALANCED_BAND
    in_band = [
        c for c in Category
        if low <= ctx.all_time.category_percentages[c] <= high
    ]
    if len(in_band) < BALANCED_MIN_CATEGORIES:
        return None

    return Insight(
        type=InsightType.ACHIEVEMENT,
        title="Well-Balanced Portfolio ⚖️",
        description=(
            f"{len(in_band)} of your {len(Category)} perspectives sit between "
            f"{low:.0f}% and {high:.0f}% of your time. Nicely balanced!"
        ),
        confidence=0.9,
        priority=InsightPriority.MEDIUM,
        actionable=False,
        based_on={
            "balancedCategories": [c.value for c in in_band],
            "percentages": {c.value: p for c, p in ctx.all_time.category_percentages.items()},
            "totalHours": total,
        },
        generated_at=ctx.now,
        valid_until=ctx.now + timedelta(days=BALANCED_VALID_DAYS),
    )


def dormant_projects(ctx: InsightContext) -> Optional[Insight]:
    threshold = timedelta(days=DORMANT_PROJECT_DAYS)
    dormant = [
        p for p in ctx.projects
        if p.status == ProjectStatus.ACTIVE
        and p.last_worked_at is not None
        and ctx.now - p.last_worked_at > threshold
    ]
    if not dormant:
        return None

    count = len(dormant)
    names = ", ".join(p.name for p in dormant)
    return Insight(
        type=InsightType.ALERT,
        title=f"{count} {_plural(count, 'Project')} Need{'s' if count == 1 else ''} Attention",
        description=(
            f"{names} {'has' if count == 1 else 'have'} been inactive for over "
            f"{DORMANT_PROJECT_DAYS} days. Consider updating status or logging time."
        ),
        confidence=0.9,
        priority=InsightPriority.HIGH,
        actionable=True,
        suggested_actions=[
            "Log time on dormant projects",
            "Change project status to paused",
            "Add journal entry about these projects",
        ],
        based_on={
            "dormantProjects": [p.name for p in dormant],
            "dormantProjectIds": [p.id for p in dormant],
        },
        generated_at=ctx.now,
    )


def low_activity_week(ctx: InsightContext) -> Optional[Insight]:
    # Raw hours: orphaned logs still count as activity
    weekly_hours = ctx.recent.raw_hours
    log_count = len(ctx.time_logs)
    if weekly_hours >= LOW_ACTIVITY_HOURS or log_count <= LOW_ACTIVITY_MIN_LOGS:
        return None

    average = historical_weekly_average(ctx.all_time.raw_hours, log_count)
    return Insight(
        type=InsightType.PATTERN,
        title="Lower Activity This Week",
        description=(
            f"You've logged {weekly_hours:.1f} hours this week, compared with a typical "
            f"{average:.1f}. This might be intentional, or it could be worth checking in "
            "on your goals."
        ),
        confidence=0.7,
        priority=InsightPriority.MEDIUM,
        actionable=True,
        suggested_actions=[
            "Review your current priorities",
            "Consider if you need a break",
            "Schedule time for your active projects",
        ],
        based_on={
            "weeklyHours": weekly_hours,
            "averageWeekly": average,
            "logCount": log_count,
        },
        generated_at=ctx.now,
    )


def journaling_gap(ctx: InsightContext) -> Optional[Insight]:
    entries = ctx.journal_entries
    if len(entries) <= JOURNAL_GAP_MIN_ENTRIES:
        return None
    window = ctx.recent_window
    if any(window.contains(e.date) for e in entries):
        return None

    latest = max(e.date for e in entries)
    return Insight(
        type=InsightType.SUGGESTION,
        title="Time to Reflect",
        description=(
            "You haven't written a journal entry this week. Regular reflection helps "
            "you notice patterns and make better decisions."
        ),
        confidence=0.6,
        priority=InsightPriority.LOW,
        actionable=True,
        suggested_actions=[
            "Write about your week so far",
            "Reflect on a recent milestone",
            "Capture any learnings or insights",
        ],
        based_on={
            "daysSinceLastJournal": (ctx.now - latest).days,
            "totalEntries": len(entries),
        },
        generated_at=ctx.now,
    )


def milestone_celebration(ctx: InsightContext) -> Optional[Insight]:
    window = ctx.recent_window
    milestones = [
        e for e in ctx.journal_entries
        if e.entry_type == EntryType.MILESTONE and window.contains(e.date)
    ]
    if not milestones:
        return None

    count = len(milestones)
    return Insight(
        type=InsightType.ACHIEVEMENT,
        title="Great Progress This Week! 🎉",
        description=(
            f"You logged {count} {_plural(count, 'milestone')} this week. "
            "Take a moment to acknowledge your achievements!"
        ),
        confidence=1.0,
        priority=InsightPriority.MEDIUM,
        actionable=False,
        based_on={
            "milestones": count,
            "entryIds": [e.id for e in milestones],
        },
        generated_at=ctx.now,
        valid_until=ctx.now + timedelta(days=MILESTONE_VALID_DAYS),
    )


Rule = Callable[[InsightContext], Optional[Insight]]

RULES: tuple[Rule, ...] = (
    overconcentration,
    missing_category,
    category_neglect,
    balanced_portfolio,
    dormant_projects,
    low_activity_week,
    journaling_gap,
    milestone_celebration,
)


def run_rules(ctx: InsightContext, rules: Iterable[Rule] = RULES) -> list[Insight]:
    insights = []
    for rule in rules:
        insight = rule(ctx)
        if insight is not None:
            logger.debug("Insight rule %s fired: %s", rule.__name__, insight.title)
            insights.append(insight)
    return insights


def generate(
    time_logs: Iterable[Any],
    projects: Iterable[Any],
    journal_entries: Iterable[Any],
    now: datetime,
) -> list[Insight]:
    """Run every rule against the supplied snapshot.

    Pure: inputs are never mutated and nothing is persisted. Malformed
    records raise MalformedInputError before any rule runs.
    """
    ctx = build_context(time_logs, projects, journal_entries, now)
    insights = run_rules(ctx)
    logger.info(
        "Generated %d insight(s) from %d logs, %d projects, %d journal entries",
        len(insights), len(ctx.time_logs), len(ctx.projects), len(ctx.journal_entries),
    )
    return insights
