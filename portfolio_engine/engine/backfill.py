"""One-time category backfill for legacy projects.

Projects created before categories existed only carry a legacy ``type``.
This infers a category from it and assigns a default alignment; projects
that already have a category are left untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from portfolio_engine.models.category import infer_category_from_type
from portfolio_engine.models.records import Project, parse_projects

logger = logging.getLogger(__name__)

DEFAULT_ALIGNMENT = 75.0


@dataclass
class BackfillResult:
    projects: list[Project] = field(default_factory=list)
    migrated_ids: list[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def migrated(self) -> int:
        return len(self.migrated_ids)

    @property
    def total(self) -> int:
        return self.migrated + self.skipped

    def changed(self) -> list[Project]:
        """Only the projects the caller needs to write back."""
        ids = set(self.migrated_ids)
        return [p for p in self.projects if p.id in ids]


def backfill_categories(projects: Iterable[Any]) -> BackfillResult:
    result = BackfillResult()
    for project in parse_projects(projects):
        if project.category is not None:
            result.projects.append(project)
            result.skipped += 1
            continue

        category = infer_category_from_type(project.type)
        result.projects.append(project.model_copy(update={
            "category": category,
            "category_alignment": DEFAULT_ALIGNMENT,
        }))
        result.migrated_ids.append(project.id)
        logger.info("Backfill: %s -> %s", project.name, category.value)

    logger.info(
        "Backfill complete: migrated %d, skipped %d, total %d",
        result.migrated, result.skipped, result.total,
    )
    return result
