"""Engine-wide configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

# Redis (insight lifecycle state)
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# ── Insight Rules ────────────────────────────────────────────────────────

# An active project untouched for longer than this is flagged dormant.
DORMANT_PROJECT_DAYS: int = int(os.getenv("DORMANT_PROJECT_DAYS", "14"))
# Trailing window used by the category-neglect rule.
NEGLECT_WINDOW_DAYS: int = int(os.getenv("NEGLECT_WINDOW_DAYS", "14"))
# Trailing window used by the weekly activity / journaling / milestone rules.
RECENT_WINDOW_DAYS: int = int(os.getenv("RECENT_WINDOW_DAYS", "7"))

# ── Insight Retention ────────────────────────────────────────────────────

# Dismissed insights older than this are removed by the retention sweep.
INSIGHT_RETENTION_DAYS: int = int(os.getenv("INSIGHT_RETENTION_DAYS", "30"))
