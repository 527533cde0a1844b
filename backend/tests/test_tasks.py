from datetime import datetime, timezone

import pytest

from marketplace.domain.core.schema import ProjectStatus, TaskStatus
from marketplace.services.errors import (
    InvalidStateError,
    NotFoundError,
    OwnershipForbiddenError,
    RoleForbiddenError,
    ValidationError,
)


@pytest.fixture
def task(assigned_project, tasks, solver):
    return tasks.create_task(solver, assigned_project.id, "API", "Build endpoints", "2030-01-01")


def test_create_task_on_assigned_project(task, assigned_project, solver) -> None:
    assert task.status is TaskStatus.IN_PROGRESS
    assert task.project_id == assigned_project.id
    assert task.solver_id == solver.id
    assert task.timeline == datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_timeline_is_normalised_to_utc(assigned_project, tasks, solver) -> None:
    created = tasks.create_task(solver, assigned_project.id, "UI", "Screens", "2030-01-01T12:00:00+02:00")
    assert created.timeline == datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("timeline", [None, "", "not-a-date", "2030-13-40"])
def test_create_task_rejects_bad_timeline(assigned_project, tasks, solver, timeline) -> None:
    with pytest.raises(ValidationError):
        tasks.create_task(solver, assigned_project.id, "API", "Build endpoints", timeline)


def test_only_assigned_solver_creates_tasks(assigned_project, tasks, other_solver, buyer) -> None:
    with pytest.raises(OwnershipForbiddenError):
        tasks.create_task(other_solver, assigned_project.id, "API", "Build endpoints", "2030-01-01")
    with pytest.raises(RoleForbiddenError):
        tasks.create_task(buyer, assigned_project.id, "API", "Build endpoints", "2030-01-01")


def test_no_tasks_before_assignment(projects, tasks, buyer, solver) -> None:
    project = projects.create_project(buyer, "Title", "Description")
    # Nobody owns an unassigned project, so the ownership check fires first.
    with pytest.raises(OwnershipForbiddenError):
        tasks.create_task(solver, project.id, "API", "Build endpoints", "2030-01-01")


def test_submit_and_accept(task, tasks, solver, buyer, zip_file) -> None:
    submitted, submission = tasks.submit_task(solver, task.id, "work.zip", "application/zip", zip_file())

    assert submitted.status is TaskStatus.SUBMITTED
    assert submission.file_name == "work.zip"
    assert submission.file_url.startswith("uploads/submissions/")
    assert submission.file_url.endswith("-work.zip")

    reviewed = tasks.review_task(buyer, task.id, "accept")
    assert reviewed.status is TaskStatus.COMPLETED


def test_reject_then_resubmit_keeps_history(task, tasks, solver, buyer, other_solver, zip_file) -> None:
    tasks.submit_task(solver, task.id, "first.zip", "application/zip", zip_file())
    assert tasks.review_task(buyer, task.id, "reject").status is TaskStatus.REJECTED

    resubmitted, second = tasks.submit_task(solver, task.id, "second.zip", "application/zip", zip_file())

    assert resubmitted.status is TaskStatus.SUBMITTED
    assert [s.file_name for s in tasks.list_submissions(buyer, task.id)] == ["first.zip", "second.zip"]
    assert tasks.get_latest_submission(buyer, task.id).id == second.id
    with pytest.raises(OwnershipForbiddenError):
        tasks.list_submissions(other_solver, task.id)


def test_latest_submission_is_stable(task, tasks, solver, buyer, zip_file) -> None:
    tasks.submit_task(solver, task.id, "work.zip", "application/zip", zip_file())

    first = tasks.get_latest_submission(buyer, task.id)
    again = tasks.get_latest_submission(solver, task.id)
    assert first == again


def test_latest_submission_missing(task, tasks, buyer) -> None:
    with pytest.raises(NotFoundError):
        tasks.get_latest_submission(buyer, task.id)


def test_cannot_skip_submission(task, tasks, buyer) -> None:
    for decision in ("accept", "reject"):
        with pytest.raises(InvalidStateError):
            tasks.review_task(buyer, task.id, decision)


def test_cannot_submit_twice(task, tasks, solver, zip_file) -> None:
    tasks.submit_task(solver, task.id, "work.zip", "application/zip", zip_file())
    with pytest.raises(InvalidStateError):
        tasks.submit_task(solver, task.id, "again.zip", "application/zip", zip_file())


def test_completed_task_is_terminal(task, tasks, solver, buyer, zip_file) -> None:
    tasks.submit_task(solver, task.id, "work.zip", "application/zip", zip_file())
    tasks.review_task(buyer, task.id, "accept")

    with pytest.raises(InvalidStateError):
        tasks.review_task(buyer, task.id, "reject")
    with pytest.raises(InvalidStateError):
        tasks.submit_task(solver, task.id, "late.zip", "application/zip", zip_file())


def test_review_rejects_unknown_action(task, tasks, solver, buyer, zip_file) -> None:
    tasks.submit_task(solver, task.id, "work.zip", "application/zip", zip_file())
    with pytest.raises(ValidationError):
        tasks.review_task(buyer, task.id, "maybe")
    assert tasks.list_tasks(buyer, task.project_id)[0].status is TaskStatus.SUBMITTED


def test_review_needs_project_owner(task, tasks, solver, other_buyer, zip_file) -> None:
    tasks.submit_task(solver, task.id, "work.zip", "application/zip", zip_file())
    with pytest.raises(OwnershipForbiddenError):
        tasks.review_task(other_buyer, task.id, "accept")
    with pytest.raises(RoleForbiddenError):
        tasks.review_task(solver, task.id, "accept")


@pytest.mark.parametrize(
    ("file_name", "content_type"),
    [("work.rar", "application/zip"), ("work.zip", "text/plain"), ("", "application/zip")],
)
def test_submit_rejects_non_zip(task, tasks, solver, zip_file, file_name, content_type) -> None:
    with pytest.raises(ValidationError):
        tasks.submit_task(solver, task.id, file_name, content_type, zip_file())
    assert tasks.list_tasks(solver, task.project_id)[0].status is TaskStatus.IN_PROGRESS


def test_submit_rejects_oversized_upload(task, tasks, solver, tmp_path, zip_file) -> None:
    with pytest.raises(ValidationError):
        tasks.submit_task(solver, task.id, "big.zip", "application/zip", zip_file(b"x" * 4096))
    assert list((tmp_path / "uploads").iterdir()) == []


def test_submit_without_file(task, tasks, solver) -> None:
    with pytest.raises(ValidationError):
        tasks.submit_task(solver, task.id, None, None, None)


def test_other_solver_cannot_submit(task, tasks, other_solver, zip_file) -> None:
    with pytest.raises(OwnershipForbiddenError):
        tasks.submit_task(other_solver, task.id, "work.zip", "application/zip", zip_file())


def test_task_list_visibility(task, tasks, buyer, solver, admin, other_buyer, other_solver) -> None:
    for actor in (buyer, solver, admin):
        assert [t.id for t in tasks.list_tasks(actor, task.project_id)] == [task.id]
    for actor in (other_buyer, other_solver):
        with pytest.raises(OwnershipForbiddenError):
            tasks.list_tasks(actor, task.project_id)


def test_project_completes_once_every_task_is_accepted(
    assigned_project, projects, tasks, solver, buyer, zip_file
) -> None:
    first = tasks.create_task(solver, assigned_project.id, "One", "First part", "2030-01-01")
    second = tasks.create_task(solver, assigned_project.id, "Two", "Second part", "2030-02-01")
    for item in (first, second):
        tasks.submit_task(solver, item.id, "work.zip", "application/zip", zip_file())
    tasks.review_task(buyer, first.id, "accept")

    with pytest.raises(InvalidStateError):
        projects.complete_project(buyer, assigned_project.id)

    tasks.review_task(buyer, second.id, "accept")
    completed = projects.complete_project(buyer, assigned_project.id)
    assert completed.status is ProjectStatus.COMPLETED

    with pytest.raises(InvalidStateError):
        tasks.create_task(solver, assigned_project.id, "Three", "Too late", "2030-03-01")
