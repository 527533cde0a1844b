from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from marketplace.domain.core.schema import ProjectStatus, RequestStatus, Role, TaskStatus
from marketplace.infra.db.models import Base, SolverRequestModel
from marketplace.infra.repositories.sql_project_repository import SqlProjectRepository
from marketplace.infra.repositories.sql_user_repository import SqlUserRepository
from marketplace.services.errors import ConflictError, InvalidStateError, NotFoundError

DEADLINE = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'marketplace.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as db:
        yield db


@pytest.fixture
def rival(engine) -> SqlProjectRepository:
    """A second connection writing to the same database."""
    with Session(engine) as db:
        yield SqlProjectRepository(db)


@pytest.fixture
def people(session):
    users = SqlUserRepository(session)
    return {
        "buyer": users.create("Buyer", "buyer@example.com", "hash", Role.BUYER),
        "solver": users.create("Solver", "solver@example.com", "hash", Role.PROBLEM_SOLVER),
        "other": users.create("Other", "other@example.com", "hash", Role.PROBLEM_SOLVER),
    }


@pytest.fixture
def repo(session) -> SqlProjectRepository:
    return SqlProjectRepository(session)


def test_user_repository_roundtrip(session, people) -> None:
    users = SqlUserRepository(session)

    assert users.find_by_email("buyer@example.com").id == people["buyer"].id
    assert users.find_by_email("nobody@example.com") is None
    with pytest.raises(ConflictError):
        users.create("Again", "buyer@example.com", "hash", Role.BUYER)

    changed = users.set_role(people["solver"].id, Role.BUYER)
    assert changed.role is Role.BUYER
    assert users.get(people["solver"].id).role is Role.BUYER
    assert len(users.list()) == 3


def test_project_lifecycle(repo, people) -> None:
    buyer, solver, other = people["buyer"], people["solver"], people["other"]

    project = repo.create(buyer.id, "Build X", "Details")
    assert project.status is ProjectStatus.UNASSIGNED
    assert project.created_at.tzinfo is not None

    edited = repo.update(project.id, title="Build Y")
    assert edited.title == "Build Y"

    accepted = repo.add_request(project.id, solver.id)
    rejected = repo.add_request(project.id, other.id)
    with pytest.raises(ConflictError):
        repo.add_request(project.id, solver.id)

    assigned = repo.assign(project.id, accepted.id)
    assert assigned.status is ProjectStatus.ASSIGNED
    assert assigned.solver_id == solver.id
    assert {r.id: r.status for r in repo.list_requests(project.id)} == {
        accepted.id: RequestStatus.ACCEPTED,
        rejected.id: RequestStatus.REJECTED,
    }
    assert repo.find_assigned_to(solver.id).id == project.id

    with pytest.raises(InvalidStateError):
        repo.assign(project.id, rejected.id)
    with pytest.raises(InvalidStateError):
        repo.update(project.id, title="Too late")
    with pytest.raises(InvalidStateError):
        repo.delete(project.id)


def test_task_cycle_and_completion(repo, people) -> None:
    buyer, solver = people["buyer"], people["solver"]
    project = repo.create(buyer.id, "Build X", "Details")
    repo.assign(project.id, repo.add_request(project.id, solver.id).id)

    task = repo.add_task(project.id, solver.id, "API", "Endpoints", DEADLINE)
    assert task.timeline == DEADLINE

    with pytest.raises(InvalidStateError):
        repo.set_task_status(task.id, TaskStatus.COMPLETED)
    with pytest.raises(InvalidStateError):
        repo.complete(project.id)

    submitted, first = repo.record_submission(task.id, solver.id, "uploads/1-a.zip", "a.zip")
    assert submitted.status is TaskStatus.SUBMITTED
    with pytest.raises(InvalidStateError):
        repo.record_submission(task.id, solver.id, "uploads/2-b.zip", "b.zip")

    repo.set_task_status(task.id, TaskStatus.REJECTED)
    _, second = repo.record_submission(task.id, solver.id, "uploads/3-c.zip", "c.zip")
    assert [s.id for s in repo.list_submissions(task.id)] == [first.id, second.id]
    assert repo.latest_submission(task.id).id == second.id

    repo.set_task_status(task.id, TaskStatus.COMPLETED)
    completed = repo.complete(project.id)
    assert completed.status is ProjectStatus.COMPLETED

    with pytest.raises(InvalidStateError):
        repo.add_task(project.id, solver.id, "More", "Work", DEADLINE)


def test_delete_removes_requests(repo, people) -> None:
    project = repo.create(people["buyer"].id, "Build X", "Details")
    repo.add_request(project.id, people["solver"].id)

    repo.delete(project.id)

    with pytest.raises(NotFoundError):
        repo.get(project.id)
    with pytest.raises(NotFoundError):
        repo.list_requests(project.id)


def test_failed_unit_rolls_back(repo, people) -> None:
    project = repo.create(people["buyer"].id, "Build X", "Details")
    foreign = repo.create(people["buyer"].id, "Other", "Details")
    request = repo.add_request(foreign.id, people["solver"].id)

    with pytest.raises(NotFoundError):
        repo.assign(project.id, request.id)

    assert repo.get(project.id).status is ProjectStatus.UNASSIGNED
    assert repo.list_requests(foreign.id)[0].status is RequestStatus.PENDING


def _interleave(monkeypatch, repo: SqlProjectRepository, step) -> None:
    """Runs ``step`` on another connection right after ``repo`` reads the project."""
    read = repo._project_model

    def read_then_step(project_id: str):
        model = read(project_id)
        monkeypatch.setattr(repo, "_project_model", read)
        step()
        return model

    monkeypatch.setattr(repo, "_project_model", read_then_step)


def test_request_racing_an_assignment_is_refused(monkeypatch, repo, rival, people) -> None:
    project = rival.create(people["buyer"].id, "Build X", "Details")
    first = rival.add_request(project.id, people["solver"].id)
    _interleave(monkeypatch, repo, lambda: rival.assign(project.id, first.id))

    with pytest.raises(InvalidStateError):
        repo.add_request(project.id, people["other"].id)

    assert rival.get(project.id).status is ProjectStatus.ASSIGNED
    assert [r.status for r in rival.list_requests(project.id)] == [RequestStatus.ACCEPTED]


def test_task_racing_completion_is_refused(monkeypatch, repo, rival, people) -> None:
    solver = people["solver"]
    project = rival.create(people["buyer"].id, "Build X", "Details")
    rival.assign(project.id, rival.add_request(project.id, solver.id).id)
    done = rival.add_task(project.id, solver.id, "API", "Endpoints", DEADLINE)
    rival.record_submission(done.id, solver.id, "uploads/1-a.zip", "a.zip")
    rival.set_task_status(done.id, TaskStatus.COMPLETED)
    _interleave(monkeypatch, repo, lambda: rival.complete(project.id))

    with pytest.raises(InvalidStateError):
        repo.add_task(project.id, solver.id, "Late", "Added after completion", DEADLINE)

    assert rival.get(project.id).status is ProjectStatus.COMPLETED
    assert [t.status for t in rival.list_tasks(project.id)] == [TaskStatus.COMPLETED]


def test_completion_sees_a_task_added_meanwhile(monkeypatch, repo, rival, people) -> None:
    solver = people["solver"]
    project = rival.create(people["buyer"].id, "Build X", "Details")
    rival.assign(project.id, rival.add_request(project.id, solver.id).id)
    done = rival.add_task(project.id, solver.id, "API", "Endpoints", DEADLINE)
    rival.record_submission(done.id, solver.id, "uploads/1-a.zip", "a.zip")
    rival.set_task_status(done.id, TaskStatus.COMPLETED)
    _interleave(monkeypatch, repo, lambda: rival.add_task(project.id, solver.id, "UI", "Screens", DEADLINE))

    with pytest.raises(InvalidStateError):
        repo.complete(project.id)

    assert rival.get(project.id).status is ProjectStatus.ASSIGNED
    assert len(rival.list_tasks(project.id)) == 2


def test_request_racing_a_delete_leaves_no_orphans(monkeypatch, repo, rival, session, people) -> None:
    project = rival.create(people["buyer"].id, "Build X", "Details")
    _interleave(monkeypatch, repo, lambda: rival.add_request(project.id, people["solver"].id))

    repo.delete(project.id)

    with pytest.raises(NotFoundError):
        rival.get(project.id)
    assert session.scalar(select(func.count()).select_from(SolverRequestModel)) == 0


def test_find_assigned_to_prefers_oldest_project(repo, people) -> None:
    solver = people["solver"]
    older = repo.create(people["buyer"].id, "First", "Details")
    newer = repo.create(people["buyer"].id, "Second", "Details")
    for project in (newer, older):
        repo.assign(project.id, repo.add_request(project.id, solver.id).id)

    assert repo.find_assigned_to(solver.id).id == older.id
