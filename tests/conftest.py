"""Shared test fixtures for the portfolio engine test suite."""

import pytest
import fakeredis
from datetime import datetime, timedelta, timezone

from portfolio_engine.models.records import JournalEntry, Project, TimeLog


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


# ── Time Freezing ───────────────────────────────────────────────────────

@pytest.fixture
def frozen_now():
    """Return a fixed 'now' datetime for deterministic window tests.

    Default: 2026-02-15T12:00:00Z (noon UTC on a Sunday).
    """
    return datetime(2026, 2, 15, 12, 0, 0, tzinfo=timezone.utc)


# ── Record Factories ────────────────────────────────────────────────────

@pytest.fixture
def make_project():
    """Factory fixture that creates Project records with sensible defaults.

    Usage:
        project = make_project(category="builder", status="active")
    """
    _counter = 0

    def _factory(**overrides):
        nonlocal _counter
        _counter += 1
        defaults = {
            "id": f"proj-{_counter}",
            "name": f"Project {_counter}",
            "status": "active",
            "category": "builder",
        }
        defaults.update(overrides)
        return Project(**defaults)

    return _factory


@pytest.fixture
def make_log(frozen_now):
    """Factory fixture for TimeLog records; ``days_ago`` offsets from frozen_now."""
    _counter = 0

    def _factory(project_id="proj-1", duration=1.0, days_ago=1.0, **overrides):
        nonlocal _counter
        _counter += 1
        defaults = {
            "id": f"log-{_counter}",
            "project_id": project_id,
            "duration": duration,
            "date": frozen_now - timedelta(days=days_ago),
        }
        defaults.update(overrides)
        return TimeLog(**defaults)

    return _factory


@pytest.fixture
def make_journal(frozen_now):
    """Factory fixture for JournalEntry records; ``days_ago`` offsets from frozen_now."""
    _counter = 0

    def _factory(days_ago=1.0, **overrides):
        nonlocal _counter
        _counter += 1
        defaults = {
            "id": f"journal-{_counter}",
            "date": frozen_now - timedelta(days=days_ago),
            "entry_type": "general",
            "content": f"Entry {_counter}",
        }
        defaults.update(overrides)
        return JournalEntry(**defaults)

    return _factory


@pytest.fixture
def four_projects(make_project):
    """One project per category, ids proj-builder / proj-contributor / ..."""
    return [
        make_project(id=f"proj-{c}", name=c.title(), category=c)
        for c in ("builder", "contributor", "integrator", "experimenter")
    ]


@pytest.fixture
def hours_per_category(four_projects, make_log):
    """Build logs giving each category the requested hours (one log each, 1 day ago)."""
    def _factory(builder=0.0, contributor=0.0, integrator=0.0, experimenter=0.0, days_ago=1.0):
        logs = []
        for category, hours in (
            ("builder", builder),
            ("contributor", contributor),
            ("integrator", integrator),
            ("experimenter", experimenter),
        ):
            if hours > 0:
                logs.append(make_log(project_id=f"proj-{category}", duration=hours, days_ago=days_ago))
        return logs

    return _factory
