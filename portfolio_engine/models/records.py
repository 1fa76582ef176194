"""Read-only record snapshots supplied by the external document store.

Records arrive as dicts in the store's camelCase shape (``projectId``,
``lastWorkedAt``) or as already-built models. Validation happens here,
at the engine boundary, so malformed input never reaches the aggregator.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from portfolio_engine.exceptions import MalformedInputError
from portfolio_engine.models.category import Category


class ProjectStatus:
    PLANNING = "planning"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    ALL = (PLANNING, ACTIVE, PAUSED, COMPLETED, ARCHIVED)


class EntryType:
    GENERAL = "general"
    REFLECTION = "reflection"
    LEARNING = "learning"
    DECISION = "decision"
    MILESTONE = "milestone"
    STRUGGLE = "struggle"
    IDEA = "idea"

    ALL = (GENERAL, REFLECTION, LEARNING, DECISION, MILESTONE, STRUGGLE, IDEA)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so window comparisons never mix kinds."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class TimeLog(_Record):
    id: str
    project_id: str
    date: datetime                          # ISO 8601 in the store
    duration: float                         # hours, strictly positive
    activity_type: Optional[str] = None
    energy_level: Optional[int] = None      # 1-5
    productivity_feeling: Optional[int] = None
    enjoyment_level: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("duration", mode="before")
    @classmethod
    def duration_is_number(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"duration must be a number, got {type(v).__name__}")
        return v

    @field_validator("duration")
    @classmethod
    def duration_is_positive(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError(f"duration must be a positive number of hours, got {v}")
        return v

    @field_validator("energy_level", "productivity_feeling", "enjoyment_level", mode="before")
    @classmethod
    def blank_rating_is_absent(cls, v: Any) -> Any:
        # The store writes 0 / empty for "not rated"
        if v in (None, "", 0):
            return None
        return v

    @field_validator("energy_level", "productivity_feeling", "enjoyment_level")
    @classmethod
    def rating_in_range(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {v}")
        return v

    @field_validator("date")
    @classmethod
    def date_as_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Project(_Record):
    id: str
    name: str
    type: Optional[str] = None              # legacy enum, backfill only
    status: str = ProjectStatus.PLANNING
    category: Optional[Category] = Field(
        default=None,
        validation_alias=AliasChoices("category", "perspective"),
    )
    category_alignment: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        validation_alias=AliasChoices(
            "categoryAlignment", "category_alignment",
            "perspectiveAlignment", "perspective_alignment",
        ),
    )
    total_hours_logged: float = 0.0
    target_hours: Optional[float] = None
    last_worked_at: Optional[datetime] = None
    started_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def status_is_known(cls, v: str) -> str:
        if v not in ProjectStatus.ALL:
            raise ValueError(f"unknown project status {v!r}")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def blank_category_is_absent(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("last_worked_at", "started_at")
    @classmethod
    def timestamps_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class JournalEntry(_Record):
    id: str
    date: datetime
    project_id: Optional[str] = None
    entry_type: str = EntryType.GENERAL
    content: str = ""
    sentiment: Optional[str] = None
    favorite: bool = False
    tags: frozenset[str] = frozenset()

    @field_validator("entry_type")
    @classmethod
    def entry_type_is_known(cls, v: str) -> str:
        if v not in EntryType.ALL:
            raise ValueError(f"unknown journal entry type {v!r}")
        return v

    @field_validator("date")
    @classmethod
    def date_as_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


R = TypeVar("R", bound=_Record)


def parse_records(model: type[R], items: Iterable[Any] | None) -> list[R]:
    """Validate a collection of records, failing fast on the first bad one."""
    records: list[R] = []
    for index, item in enumerate(items or ()):
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            raise MalformedInputError(
                f"Invalid {model.__name__} at index {index}: {exc.errors()[0]['msg']}"
            ) from exc
    return records


def parse_time_logs(items: Iterable[Any] | None) -> list[TimeLog]:
    return parse_records(TimeLog, items)


def parse_projects(items: Iterable[Any] | None) -> list[Project]:
    return parse_records(Project, items)


def parse_journal_entries(items: Iterable[Any] | None) -> list[JournalEntry]:
    return parse_records(JournalEntry, items)
