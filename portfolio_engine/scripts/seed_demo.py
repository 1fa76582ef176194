"""Seed Redis with insights generated from a demo portfolio.

Run: python -m portfolio_engine.scripts.seed_demo
"""

import logging
from datetime import datetime, timedelta, timezone

import redis

from portfolio_engine.config.settings import LOG_LEVEL, REDIS_URL
from portfolio_engine.engine.insight_store import save_insights
from portfolio_engine.engine.insights import generate
from portfolio_engine.engine.portfolio import recompute
from portfolio_engine.models.insight import INSIGHT_INDEX_KEY, INSIGHT_PREFIX


def clear_insights(r: redis.Redis) -> None:
    """Remove all stored insights from Redis."""
    for key in r.scan_iter(f"{INSIGHT_PREFIX}*"):
        r.delete(key)
    r.delete(INSIGHT_INDEX_KEY)


def demo_records(now: datetime) -> tuple[list[dict], list[dict], list[dict]]:
    """A builder-heavy portfolio with one stalled project and a recent milestone."""
    def days_ago(n: float) -> str:
        return (now - timedelta(days=n)).isoformat()

    projects = [
        {"id": "proj-saas", "name": "Invoice SaaS", "category": "builder",
         "status": "active", "lastWorkedAt": days_ago(1)},
        {"id": "proj-book", "name": "Field Notes Book", "category": "builder",
         "status": "active", "lastWorkedAt": days_ago(20)},
        {"id": "proj-mentor", "name": "Startup Mentoring", "category": "contributor",
         "status": "active", "lastWorkedAt": days_ago(16)},
        {"id": "proj-legacy", "name": "Old Course Notes", "type": "learning",
         "status": "paused"},
    ]

    # ── Time logs: mostly SaaS work this month ───────────────────────────
    time_logs = []
    for i in range(12):
        time_logs.append({
            "id": f"log-saas-{i}", "projectId": "proj-saas", "date": days_ago(1 + i * 2),
            "duration": 3.0, "activityType": "coding", "energyLevel": 4,
        })
    time_logs += [
        {"id": "log-book-1", "projectId": "proj-book", "date": days_ago(20), "duration": 2.5,
         "activityType": "writing"},
        {"id": "log-mentor-1", "projectId": "proj-mentor", "date": days_ago(16), "duration": 1.5,
         "activityType": "meeting", "enjoymentLevel": 5},
    ]

    journal_entries = [
        {"id": f"journal-{i}", "date": days_ago(10 + i), "entryType": "reflection",
         "content": "Weekly review"}
        for i in range(5)
    ]
    journal_entries.append({
        "id": "journal-launch", "date": days_ago(2), "entryType": "milestone",
        "projectId": "proj-saas", "content": "First paying customer",
    })
    return time_logs, projects, journal_entries


def seed():
    r = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    clear_insights(r)

    now = datetime.now(timezone.utc)
    time_logs, projects, journal_entries = demo_records(now)

    snapshot = recompute(time_logs, projects, now)
    insights = generate(time_logs, projects, journal_entries, now)
    save_insights(insights, r)

    print(f"Portfolio: {snapshot.total_hours:.1f}h logged, "
          f"score {snapshot.balance.score} ({snapshot.balance.grade}, {snapshot.balance.status})")
    for category, share in snapshot.actual_allocation.items():
        print(f"  {category.value:<13} {share:5.1f}%")
    print(f"\nSeeded {len(insights)} insights:")
    for insight in insights:
        s = insight.summary()
        print(f"  [{s['id']}] {s['priority']:<6} {s['type']:<11} {s['title']}")


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    seed()
