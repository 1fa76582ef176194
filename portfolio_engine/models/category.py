"""Perspective categories — the fixed set every project is classified under.

The registry is static: categories are defined at import time and never
created or destroyed at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from portfolio_engine.exceptions import MalformedInputError


class Category(str, Enum):
    BUILDER = "builder"              # creating tangible value
    CONTRIBUTOR = "contributor"      # teaching, mentoring, community
    INTEGRATOR = "integrator"        # connecting interests
    EXPERIMENTER = "experimenter"    # learning without pressure to finish


@dataclass(frozen=True)
class CategoryInfo:
    id: Category
    label: str
    icon: str
    color: str
    description: str
    examples: str
    pitch: str  # completes "Consider starting a project to ..."


CATEGORY_REGISTRY: dict[Category, CategoryInfo] = {
    Category.BUILDER: CategoryInfo(
        id=Category.BUILDER,
        label="Builder",
        icon="🔨",
        color="#3B82F6",
        description="Creating tangible value through products, projects, or businesses",
        examples="Building a SaaS, writing a book, creating art",
        pitch="create something tangible like a product, book, or business",
    ),
    Category.CONTRIBUTOR: CategoryInfo(
        id=Category.CONTRIBUTOR,
        label="Contributor",
        icon="🤝",
        color="#10B981",
        description="Giving back through teaching, mentoring, or community service",
        examples="Mentoring startups, volunteering, teaching courses",
        pitch="give back through teaching, mentoring, or volunteering",
    ),
    Category.INTEGRATOR: CategoryInfo(
        id=Category.INTEGRATOR,
        label="Integrator",
        icon="🔄",
        color="#8B5CF6",
        description="Exploring connections between different interests and experiences",
        examples="Cross-pollinating ideas, interdisciplinary projects",
        pitch="connect different interests and explore interdisciplinary ideas",
    ),
    Category.EXPERIMENTER: CategoryInfo(
        id=Category.EXPERIMENTER,
        label="Experimenter",
        icon="🧪",
        color="#F59E0B",
        description="Learning new skills and trying new things without pressure to complete",
        examples="Learning languages, trying hobbies, exploring interests",
        pitch="learn new skills and try new things without pressure to complete",
    ),
}

# Legacy project "type" → category, used only by the one-time backfill.
LEGACY_TYPE_TO_CATEGORY: dict[str, Category] = {
    "building": Category.BUILDER,
    "consulting": Category.CONTRIBUTOR,
    "learning": Category.EXPERIMENTER,
    "contributing": Category.CONTRIBUTOR,
    "wildcard": Category.EXPERIMENTER,
}
DEFAULT_BACKFILL_CATEGORY = Category.EXPERIMENTER

# Where to rebalance when one category dominates.
COMPLEMENTARY_CATEGORIES: dict[Category, tuple[Category, Category]] = {
    Category.BUILDER: (Category.EXPERIMENTER, Category.CONTRIBUTOR),
    Category.CONTRIBUTOR: (Category.BUILDER, Category.EXPERIMENTER),
    Category.INTEGRATOR: (Category.BUILDER, Category.EXPERIMENTER),
    Category.EXPERIMENTER: (Category.BUILDER, Category.CONTRIBUTOR),
}


def get_category_info(category: Category) -> CategoryInfo:
    return CATEGORY_REGISTRY[category]


def all_categories() -> list[CategoryInfo]:
    return [CATEGORY_REGISTRY[c] for c in Category]


def label(category: Category) -> str:
    return CATEGORY_REGISTRY[category].label


def parse_category(value: Any) -> Category:
    """Coerce a string or Category into a Category.

    Raises MalformedInputError for anything outside the fixed set.
    """
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except ValueError:
        raise MalformedInputError(f"Unknown category: {value!r}") from None


def infer_category_from_type(project_type: Optional[str]) -> Category:
    """Map a legacy project type to its category (experimenter if unmapped)."""
    if not project_type:
        return DEFAULT_BACKFILL_CATEGORY
    return LEGACY_TYPE_TO_CATEGORY.get(project_type, DEFAULT_BACKFILL_CATEGORY)


def equal_split() -> dict[Category, float]:
    """Default target allocation: 100 / N per category."""
    share = 100.0 / len(Category)
    return {c: share for c in Category}
