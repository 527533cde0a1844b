# core/transitions.py
# Transition tables for projects, solver requests and tasks.
# Every status change in the repositories goes through ensure_* below.

from __future__ import annotations

from collections.abc import Iterable
from typing import Dict, FrozenSet

from marketplace.domain.core.schema import ProjectStatus, RequestStatus, TaskStatus
from marketplace.services.errors import InvalidStateError


PROJECT_TRANSITIONS: Dict[ProjectStatus, FrozenSet[ProjectStatus]] = {
    ProjectStatus.UNASSIGNED: frozenset({ProjectStatus.ASSIGNED}),
    ProjectStatus.ASSIGNED: frozenset({ProjectStatus.COMPLETED}),
    ProjectStatus.COMPLETED: frozenset(),
}

REQUEST_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.REJECTED}),
    RequestStatus.ACCEPTED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
}

# Rejected is re-enterable through a new submission; Completed is terminal.
TASK_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.SUBMITTED}),
    TaskStatus.SUBMITTED: frozenset({TaskStatus.COMPLETED, TaskStatus.REJECTED}),
    TaskStatus.REJECTED: frozenset({TaskStatus.SUBMITTED}),
    TaskStatus.COMPLETED: frozenset(),
}

_PROJECT_MESSAGES = {
    ProjectStatus.ASSIGNED: "This project has already been assigned",
    ProjectStatus.COMPLETED: "Only an assigned project can be completed",
}

_TASK_MESSAGES = {
    TaskStatus.SUBMITTED: "Task has already been submitted or completed",
    TaskStatus.COMPLETED: "Task must be in Submitted state to review",
    TaskStatus.REJECTED: "Task must be in Submitted state to review",
}


def can_transition_project(current: ProjectStatus, target: ProjectStatus) -> bool:
    return target in PROJECT_TRANSITIONS[current]


def can_transition_task(current: TaskStatus, target: TaskStatus) -> bool:
    return target in TASK_TRANSITIONS[current]


def ensure_project_transition(current: ProjectStatus, target: ProjectStatus) -> None:
    if not can_transition_project(current, target):
        raise InvalidStateError(
            _PROJECT_MESSAGES.get(target, f"Project cannot move from {current.value} to {target.value}")
        )


def ensure_request_transition(current: RequestStatus, target: RequestStatus) -> None:
    if target not in REQUEST_TRANSITIONS[current]:
        raise InvalidStateError(f"Request is already {current.value}")


def ensure_task_transition(current: TaskStatus, target: TaskStatus) -> None:
    if not can_transition_task(current, target):
        raise InvalidStateError(
            _TASK_MESSAGES.get(target, f"Task cannot move from {current.value} to {target.value}")
        )


def ensure_project_editable(status: ProjectStatus) -> None:
    """Title, description and deletion are only open before assignment."""
    if status is not ProjectStatus.UNASSIGNED:
        raise InvalidStateError(f"Project can only be changed while Unassigned (currently {status.value})")


def ensure_accepts_tasks(status: ProjectStatus) -> None:
    if status is not ProjectStatus.ASSIGNED:
        raise InvalidStateError("Project must be assigned before creating tasks")


def ensure_completable(status: ProjectStatus, task_statuses: Iterable[TaskStatus]) -> None:
    """Completion needs at least one task and every task Completed."""
    ensure_project_transition(status, ProjectStatus.COMPLETED)
    statuses = list(task_statuses)
    if not statuses:
        raise InvalidStateError("Project has no tasks to complete")
    pending = sum(1 for s in statuses if s is not TaskStatus.COMPLETED)
    if pending:
        raise InvalidStateError(f"{pending} task(s) are not completed yet")
