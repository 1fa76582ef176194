"""Redis-backed Insight Lifecycle Store.

Each insight is one hash (``insight:<id>``) registered in the
``insights:all`` index set. Lifecycle transitions write back only
the fields they own, so a dismiss and an acted-on landing on the same
insight at once never overwrite each other.

Transitions are idempotent: a repeated dismiss / acted-on keeps the
original timestamp, repeating the same feedback changes nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import redis

from portfolio_engine.config.settings import INSIGHT_RETENTION_DAYS, REDIS_URL
from portfolio_engine.exceptions import InsightNotFoundError
from portfolio_engine.models.insight import (
    ACTED_ON_FIELDS,
    DISMISS_FIELDS,
    FEEDBACK_FIELDS,
    INSIGHT_INDEX_KEY,
    Insight,
)

logger = logging.getLogger(__name__)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _require(insight_id: str, r: redis.Redis) -> Insight:
    insight = Insight.from_redis(r, insight_id)
    if insight is None:
        raise InsightNotFoundError(insight_id)
    return insight


# ── Persistence ──────────────────────────────────────────────────────────

def save_insight(insight: Insight, r: redis.Redis | None = None) -> None:
    r = r or _get_redis()
    insight.to_redis(r)


def save_insights(insights: Iterable[Insight], r: redis.Redis | None = None) -> int:
    """Persist freshly generated insights. Returns how many were written."""
    r = r or _get_redis()
    count = 0
    for insight in insights:
        insight.to_redis(r)
        count += 1
    logger.info("Insight store: saved %d insight(s)", count)
    return count


def get_insight(insight_id: str, r: redis.Redis | None = None) -> Optional[Insight]:
    r = r or _get_redis()
    return Insight.from_redis(r, insight_id)


def all_insights(r: redis.Redis | None = None) -> list[Insight]:
    r = r or _get_redis()
    insights = []
    for insight_id in r.smembers(INSIGHT_INDEX_KEY):
        insight = Insight.from_redis(r, insight_id)
        if insight:
            insights.append(insight)
    return insights


# ── Queries ──────────────────────────────────────────────────────────────

def list_active(now: Optional[datetime] = None, r: redis.Redis | None = None) -> list[Insight]:
    """Non-dismissed, unexpired insights: priority high→low, then newest first."""
    now = _now(now)
    active = [i for i in all_insights(r) if i.is_active(now)]
    # Two stable sorts: secondary key first
    active.sort(key=lambda i: i.generated_at, reverse=True)
    active.sort(key=lambda i: i.priority_rank, reverse=True)
    return active


def list_dismissed(r: redis.Redis | None = None) -> list[Insight]:
    """Dismissed insights, most recently dismissed first."""
    dismissed = [i for i in all_insights(r) if i.dismissed]
    dismissed.sort(
        key=lambda i: i.dismissed_at or datetime.min.replace(tzinfo=timezone.utc),
        reverse=True,
    )
    return dismissed


def list_by_type(insight_type: str, r: redis.Redis | None = None) -> list[Insight]:
    return [i for i in all_insights(r) if i.type == insight_type and not i.dismissed]


def list_by_priority(priority: str, r: redis.Redis | None = None) -> list[Insight]:
    return [i for i in all_insights(r) if i.priority == priority and not i.dismissed]


# ── Lifecycle ────────────────────────────────────────────────────────────

def dismiss(
    insight_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    r: redis.Redis | None = None,
) -> Insight:
    r = r or _get_redis()
    insight = _require(insight_id, r)
    if insight.dismiss(reason, _now(now)):
        insight.update_redis(r, DISMISS_FIELDS)
        logger.info("Insight %s dismissed", insight_id)
    return insight


def mark_acted_on(
    insight_id: str,
    now: Optional[datetime] = None,
    r: redis.Redis | None = None,
) -> Insight:
    r = r or _get_redis()
    insight = _require(insight_id, r)
    if insight.mark_acted_on(_now(now)):
        insight.update_redis(r, ACTED_ON_FIELDS)
        logger.info("Insight %s marked as acted on", insight_id)
    return insight


def provide_feedback(
    insight_id: str,
    feedback: str,
    now: Optional[datetime] = None,
    r: redis.Redis | None = None,
) -> Insight:
    r = r or _get_redis()
    insight = _require(insight_id, r)
    if insight.set_feedback(feedback, _now(now)):
        insight.update_redis(r, FEEDBACK_FIELDS)
        logger.info("Insight %s feedback recorded: %s", insight_id, feedback)
    return insight


def purge_old_dismissed(
    max_age_days: float = INSIGHT_RETENTION_DAYS,
    now: Optional[datetime] = None,
    r: redis.Redis | None = None,
) -> int:
    """Delete dismissed insights dismissed more than ``max_age_days`` ago."""
    r = r or _get_redis()
    cutoff = _now(now) - timedelta(days=max_age_days)
    removed = 0
    for insight in all_insights(r):
        if insight.dismissed and insight.dismissed_at is not None and insight.dismissed_at < cutoff:
            Insight.delete_from_redis(r, insight.id)
            removed += 1
    logger.info("Insight store: purged %d dismissed insight(s) older than %g days", removed, max_age_days)
    return removed
