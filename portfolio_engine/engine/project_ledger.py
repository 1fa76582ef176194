"""Project ledger — keeps a project's running hour total in step with its logs.

``total_hours_logged`` is denormalized: every time-log create / edit / delete
applies a compensating delta via read-modify-write. The helpers here are
pure and return updated copies; the caller writes them back to its store.
If that write is interrupted the total can drift from the true sum of logs.
There is no reconciliation pass.
"""

from __future__ import annotations

from typing import Optional

from portfolio_engine.exceptions import MalformedInputError
from portfolio_engine.models.records import Project, ProjectStatus, TimeLog


def _check_owner(project: Project, log: TimeLog) -> None:
    if log.project_id != project.id:
        raise MalformedInputError(
            f"Time log {log.id} belongs to project {log.project_id}, not {project.id}"
        )


def apply_log_created(project: Project, log: TimeLog) -> Project:
    """Add the log's hours and bump last-worked; planning projects go active.

    A backdated log never moves ``last_worked_at`` backwards.
    """
    _check_owner(project, log)
    last_worked = log.date
    if project.last_worked_at is not None and project.last_worked_at > last_worked:
        last_worked = project.last_worked_at
    updates = {
        "total_hours_logged": project.total_hours_logged + log.duration,
        "last_worked_at": last_worked,
    }
    if project.status == ProjectStatus.PLANNING and project.started_at is None:
        updates["status"] = ProjectStatus.ACTIVE
        updates["started_at"] = log.date
    return project.model_copy(update=updates)


def apply_log_deleted(project: Project, log: TimeLog) -> Project:
    """Remove the log's hours, never going below zero."""
    _check_owner(project, log)
    return project.model_copy(update={
        "total_hours_logged": max(0.0, project.total_hours_logged - log.duration),
    })


def apply_log_updated(
    old_project: Project,
    old_log: TimeLog,
    new_log: TimeLog,
    new_project: Optional[Project] = None,
) -> tuple[Project, Optional[Project]]:
    """Move an edited log's hours from its old project to its new one.

    Returns ``(old_project, new_project)`` updated; when the log stayed on the
    same project the second element is None and the first carries both deltas.
    """
    if new_log.project_id == old_log.project_id:
        project = apply_log_deleted(old_project, old_log)
        project = apply_log_created(project, new_log)
        return project, None

    if new_project is None:
        raise MalformedInputError(f"Time log {new_log.id} moved to {new_log.project_id}; new project required")
    return apply_log_deleted(old_project, old_log), apply_log_created(new_project, new_log)
