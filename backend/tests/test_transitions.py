import pytest

from marketplace.domain.core.schema import ProjectStatus, RequestStatus, TaskStatus
from marketplace.domain.core.transitions import (
    can_transition_project,
    can_transition_task,
    ensure_completable,
    ensure_project_editable,
    ensure_request_transition,
    ensure_task_transition,
)
from marketplace.services.errors import InvalidStateError


def test_project_moves_forward_only() -> None:
    assert can_transition_project(ProjectStatus.UNASSIGNED, ProjectStatus.ASSIGNED)
    assert can_transition_project(ProjectStatus.ASSIGNED, ProjectStatus.COMPLETED)
    assert not can_transition_project(ProjectStatus.UNASSIGNED, ProjectStatus.COMPLETED)
    assert not can_transition_project(ProjectStatus.COMPLETED, ProjectStatus.ASSIGNED)
    assert not can_transition_project(ProjectStatus.ASSIGNED, ProjectStatus.UNASSIGNED)


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (TaskStatus.IN_PROGRESS, TaskStatus.SUBMITTED, True),
        (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, False),
        (TaskStatus.IN_PROGRESS, TaskStatus.REJECTED, False),
        (TaskStatus.SUBMITTED, TaskStatus.COMPLETED, True),
        (TaskStatus.SUBMITTED, TaskStatus.REJECTED, True),
        (TaskStatus.SUBMITTED, TaskStatus.SUBMITTED, False),
        (TaskStatus.REJECTED, TaskStatus.SUBMITTED, True),
        (TaskStatus.COMPLETED, TaskStatus.SUBMITTED, False),
    ],
)
def test_task_table(current, target, allowed) -> None:
    assert can_transition_task(current, target) is allowed


def test_ensure_task_transition_message() -> None:
    with pytest.raises(InvalidStateError, match="Submitted state to review"):
        ensure_task_transition(TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED)


def test_decided_request_is_final() -> None:
    ensure_request_transition(RequestStatus.PENDING, RequestStatus.ACCEPTED)
    for status in (RequestStatus.ACCEPTED, RequestStatus.REJECTED):
        with pytest.raises(InvalidStateError):
            ensure_request_transition(status, RequestStatus.ACCEPTED)


def test_only_unassigned_projects_are_editable() -> None:
    ensure_project_editable(ProjectStatus.UNASSIGNED)
    with pytest.raises(InvalidStateError):
        ensure_project_editable(ProjectStatus.ASSIGNED)


def test_completion_rules() -> None:
    ensure_completable(ProjectStatus.ASSIGNED, [TaskStatus.COMPLETED, TaskStatus.COMPLETED])

    with pytest.raises(InvalidStateError, match="no tasks"):
        ensure_completable(ProjectStatus.ASSIGNED, [])
    with pytest.raises(InvalidStateError, match="1 task"):
        ensure_completable(ProjectStatus.ASSIGNED, [TaskStatus.COMPLETED, TaskStatus.REJECTED])
    with pytest.raises(InvalidStateError):
        ensure_completable(ProjectStatus.UNASSIGNED, [TaskStatus.COMPLETED])
