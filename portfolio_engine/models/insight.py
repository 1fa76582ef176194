"""Insight model — generated observations plus their lifecycle state.

Redis-backed like the rest of the engine's persisted state: one hash per
insight, every field JSON-encoded, plus an index set of known ids.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import redis

from portfolio_engine.exceptions import MalformedInputError
from portfolio_engine.models.records import as_utc

INSIGHT_PREFIX = "insight:"
INSIGHT_INDEX_KEY = "insights:all"


class InsightType:
    BALANCE = "balance"
    PATTERN = "pattern"
    SUGGESTION = "suggestion"
    ALERT = "alert"
    ACHIEVEMENT = "achievement"
    MILESTONE = "milestone"

    ALL = (BALANCE, PATTERN, SUGGESTION, ALERT, ACHIEVEMENT, MILESTONE)


class InsightPriority:
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    ALL = (HIGH, MEDIUM, LOW)


# Higher rank sorts first; unknown priorities rank as medium.
PRIORITY_RANK = {
    InsightPriority.HIGH: 3,
    InsightPriority.MEDIUM: 2,
    InsightPriority.LOW: 1,
}


class Feedback:
    HELPFUL = "helpful"
    NOT_HELPFUL = "not-helpful"

    ALL = (HELPFUL, NOT_HELPFUL)


_TIMESTAMP_FIELDS = ("generated_at", "valid_until", "dismissed_at", "acted_on_at", "feedback_at")

# Fields each lifecycle transition owns; written back on their own.
DISMISS_FIELDS = ("dismissed", "dismissed_at", "dismiss_reason")
ACTED_ON_FIELDS = ("acted_on", "acted_on_at")
FEEDBACK_FIELDS = ("user_feedback", "feedback_at")


def new_insight_id() -> str:
    return f"insight_{uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Insight:
    type: str
    title: str
    description: str
    confidence: float = 0.8                 # 0.0-1.0
    priority: str = InsightPriority.MEDIUM
    actionable: bool = False
    suggested_actions: list = field(default_factory=list)
    based_on: dict = field(default_factory=dict)
    id: str = field(default_factory=new_insight_id)
    generated_at: datetime = field(default_factory=_utcnow)
    valid_until: Optional[datetime] = None
    dismissed: bool = False
    dismissed_at: Optional[datetime] = None
    dismiss_reason: Optional[str] = None
    acted_on: bool = False
    acted_on_at: Optional[datetime] = None
    user_feedback: Optional[str] = None     # helpful | not-helpful
    feedback_at: Optional[datetime] = None

    def __post_init__(self):
        for ts_field in _TIMESTAMP_FIELDS:
            setattr(self, ts_field, as_utc(getattr(self, ts_field)))

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK.get(self.priority, PRIORITY_RANK[InsightPriority.MEDIUM])

    def is_expired(self, now: datetime) -> bool:
        return self.valid_until is not None and self.valid_until < now

    def is_active(self, now: datetime) -> bool:
        return not self.dismissed and not self.is_expired(now)

    # -- Lifecycle transitions (each returns True when state changed) --

    def dismiss(self, reason: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        if self.dismissed:
            return False
        self.dismissed = True
        self.dismissed_at = as_utc(now or _utcnow())
        self.dismiss_reason = reason
        return True

    def mark_acted_on(self, now: Optional[datetime] = None) -> bool:
        if self.acted_on:
            return False
        self.acted_on = True
        self.acted_on_at = as_utc(now or _utcnow())
        return True

    def set_feedback(self, feedback: str, now: Optional[datetime] = None) -> bool:
        if feedback not in Feedback.ALL:
            raise MalformedInputError(
                f"Feedback must be one of {Feedback.ALL}, got {feedback!r}"
            )
        if self.user_feedback == feedback:
            return False
        self.user_feedback = feedback
        self.feedback_at = as_utc(now or _utcnow())
        return True

    # -- Serialization --

    def to_dict(self) -> dict:
        d = asdict(self)
        for ts_field in _TIMESTAMP_FIELDS:
            if d[ts_field] is not None:
                d[ts_field] = d[ts_field].isoformat()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Insight:
        data = dict(data)  # copy
        for ts_field in _TIMESTAMP_FIELDS:
            if isinstance(data.get(ts_field), str):
                data[ts_field] = datetime.fromisoformat(data[ts_field])
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_redis(self, r: redis.Redis) -> None:
        """Persist insight to its Redis hash and register it in the index."""
        key = f"{INSIGHT_PREFIX}{self.id}"
        mapping = {k: json.dumps(v) for k, v in self.to_dict().items()}
        r.hset(key, mapping=mapping)
        r.sadd(INSIGHT_INDEX_KEY, self.id)

    def update_redis(self, r: redis.Redis, fields: tuple[str, ...]) -> None:
        """Write only ``fields`` back, leaving the rest of the hash as stored."""
        d = self.to_dict()
        r.hset(f"{INSIGHT_PREFIX}{self.id}", mapping={k: json.dumps(d[k]) for k in fields})

    @classmethod
    def from_redis(cls, r: redis.Redis, insight_id: str) -> Optional[Insight]:
        """Load insight from Redis by ID."""
        data = r.hgetall(f"{INSIGHT_PREFIX}{insight_id}")
        if not data:
            return None
        decoded = {
            (k.decode() if isinstance(k, bytes) else k):
            json.loads(v.decode() if isinstance(v, bytes) else v)
            for k, v in data.items()
        }
        return cls.from_dict(decoded)

    @classmethod
    def delete_from_redis(cls, r: redis.Redis, insight_id: str) -> None:
        r.delete(f"{INSIGHT_PREFIX}{insight_id}")
        r.srem(INSIGHT_INDEX_KEY, insight_id)

    def summary(self) -> dict[str, Any]:
        """Compact view for logs and the demo script."""
        return {
            "id": self.id,
            "type": self.type,
            "priority": self.priority,
            "title": self.title,
        }
