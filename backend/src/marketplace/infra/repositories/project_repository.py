from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Protocol
from uuid import uuid4

from marketplace.domain.core.schema import ProjectStatus, RequestStatus, TaskStatus
from marketplace.domain.core.transitions import (
    ensure_accepts_tasks,
    ensure_completable,
    ensure_project_editable,
    ensure_project_transition,
    ensure_request_transition,
    ensure_task_transition,
)
from marketplace.services.errors import ConflictError, InvalidStateError, NotFoundError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProjectRecord:
    id: str
    title: str
    description: str
    buyer_id: str
    solver_id: str | None = None
    status: ProjectStatus = ProjectStatus.UNASSIGNED
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class SolverRequestRecord:
    id: str
    project_id: str
    solver_id: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class TaskRecord:
    id: str
    project_id: str
    solver_id: str
    title: str
    description: str
    timeline: datetime
    status: TaskStatus = TaskStatus.IN_PROGRESS
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SubmissionRecord:
    id: str
    task_id: str
    solver_id: str
    file_url: str
    file_name: str
    created_at: datetime = field(default_factory=utcnow)


class ProjectRepository(Protocol):
    """
    Storage for the project aggregate: projects with their solver requests,
    tasks and submissions. Every mutating method is one atomic unit and runs
    the lifecycle guards against the state it is about to change.
    """

    def list_projects(
        self,
        *,
        buyer_id: str | None = None,
        status: ProjectStatus | None = None,
    ) -> list[ProjectRecord]: ...

    def get(self, project_id: str) -> ProjectRecord: ...

    def find_assigned_to(self, solver_id: str) -> ProjectRecord | None: ...

    def create(self, buyer_id: str, title: str, description: str) -> ProjectRecord: ...

    def update(
        self,
        project_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> ProjectRecord: ...

    def delete(self, project_id: str) -> None: ...

    def add_request(self, project_id: str, solver_id: str) -> SolverRequestRecord: ...

    def list_requests(self, project_id: str) -> list[SolverRequestRecord]: ...

    def assign(self, project_id: str, request_id: str) -> ProjectRecord: ...

    def complete(self, project_id: str) -> ProjectRecord: ...

    def add_task(
        self,
        project_id: str,
        solver_id: str,
        title: str,
        description: str,
        timeline: datetime,
    ) -> TaskRecord: ...

    def list_tasks(self, project_id: str) -> list[TaskRecord]: ...

    def get_task(self, task_id: str) -> TaskRecord: ...

    def record_submission(
        self,
        task_id: str,
        solver_id: str,
        file_url: str,
        file_name: str,
    ) -> tuple[TaskRecord, SubmissionRecord]: ...

    def set_task_status(self, task_id: str, status: TaskStatus) -> TaskRecord: ...

    def list_submissions(self, task_id: str) -> list[SubmissionRecord]: ...

    def latest_submission(self, task_id: str) -> SubmissionRecord | None: ...


class InMemoryProjectRepository:
    """All mutations of the aggregate are serialised behind one lock."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._projects: dict[str, ProjectRecord] = {}
        self._requests: dict[str, SolverRequestRecord] = {}
        self._tasks: dict[str, TaskRecord] = {}
        self._submissions: dict[str, list[SubmissionRecord]] = {}

    # -- projects -------------------------------------------------------

    def list_projects(
        self,
        *,
        buyer_id: str | None = None,
        status: ProjectStatus | None = None,
    ) -> list[ProjectRecord]:
        with self._lock:
            rows = [
                replace(project)
                for project in self._projects.values()
                if (buyer_id is None or project.buyer_id == buyer_id)
                and (status is None or project.status is status)
            ]
        return sorted(rows, key=lambda project: project.created_at)

    def get(self, project_id: str) -> ProjectRecord:
        with self._lock:
            return replace(self._project(project_id))

    def find_assigned_to(self, solver_id: str) -> ProjectRecord | None:
        with self._lock:
            for project in self._projects.values():
                if project.solver_id == solver_id and project.status is ProjectStatus.ASSIGNED:
                    return replace(project)
        return None

    def create(self, buyer_id: str, title: str, description: str) -> ProjectRecord:
        now = utcnow()
        project = ProjectRecord(
            id=str(uuid4()),
            title=title,
            description=description,
            buyer_id=buyer_id,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._projects[project.id] = project
            return replace(project)

    def update(
        self,
        project_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> ProjectRecord:
        with self._lock:
            project = self._project(project_id)
            ensure_project_editable(project.status)
            if title is not None:
                project.title = title
            if description is not None:
                project.description = description
            project.updated_at = utcnow()
            return replace(project)

    def delete(self, project_id: str) -> None:
        with self._lock:
            project = self._project(project_id)
            ensure_project_editable(project.status)
            for request_id in [r.id for r in self._requests.values() if r.project_id == project_id]:
                del self._requests[request_id]
            del self._projects[project_id]

    # -- solver requests ------------------------------------------------

    def add_request(self, project_id: str, solver_id: str) -> SolverRequestRecord:
        with self._lock:
            project = self._project(project_id)
            ensure_project_transition(project.status, ProjectStatus.ASSIGNED)
            if any(r.project_id == project_id and r.solver_id == solver_id for r in self._requests.values()):
                raise ConflictError("You have already requested to work on this project")
            request = SolverRequestRecord(id=str(uuid4()), project_id=project_id, solver_id=solver_id)
            self._requests[request.id] = request
            return replace(request)

    def list_requests(self, project_id: str) -> list[SolverRequestRecord]:
        with self._lock:
            self._project(project_id)
            rows = [replace(r) for r in self._requests.values() if r.project_id == project_id]
        return sorted(rows, key=lambda request: request.created_at)

    def assign(self, project_id: str, request_id: str) -> ProjectRecord:
        with self._lock:
            project = self._project(project_id)
            ensure_project_transition(project.status, ProjectStatus.ASSIGNED)

            accepted = self._requests.get(request_id)
            if accepted is None or accepted.project_id != project_id:
                raise NotFoundError("Request", request_id, "Request not found for this project")
            ensure_request_transition(accepted.status, RequestStatus.ACCEPTED)

            now = utcnow()
            accepted.status = RequestStatus.ACCEPTED
            accepted.updated_at = now
            for sibling in self._requests.values():
                if sibling.project_id == project_id and sibling.status is RequestStatus.PENDING:
                    sibling.status = RequestStatus.REJECTED
                    sibling.updated_at = now

            project.solver_id = accepted.solver_id
            project.status = ProjectStatus.ASSIGNED
            project.updated_at = now
            return replace(project)

    def complete(self, project_id: str) -> ProjectRecord:
        with self._lock:
            project = self._project(project_id)
            ensure_completable(
                project.status,
                (task.status for task in self._tasks.values() if task.project_id == project_id),
            )
            project.status = ProjectStatus.COMPLETED
            project.updated_at = utcnow()
            return replace(project)

    # -- tasks and submissions -------------------------------------------

    def add_task(
        self,
        project_id: str,
        solver_id: str,
        title: str,
        description: str,
        timeline: datetime,
    ) -> TaskRecord:
        with self._lock:
            project = self._project(project_id)
            ensure_accepts_tasks(project.status)
            if project.solver_id != solver_id:
                raise InvalidStateError("Project is not assigned to this solver")
            now = utcnow()
            task = TaskRecord(
                id=str(uuid4()),
                project_id=project_id,
                solver_id=solver_id,
                title=title,
                description=description,
                timeline=timeline,
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            return replace(task)

    def list_tasks(self, project_id: str) -> list[TaskRecord]:
        with self._lock:
            rows = [replace(t) for t in self._tasks.values() if t.project_id == project_id]
        return sorted(rows, key=lambda task: task.created_at)

    def get_task(self, task_id: str) -> TaskRecord:
        with self._lock:
            return replace(self._task(task_id))

    def record_submission(
        self,
        task_id: str,
        solver_id: str,
        file_url: str,
        file_name: str,
    ) -> tuple[TaskRecord, SubmissionRecord]:
        with self._lock:
            task = self._task(task_id)
            ensure_task_transition(task.status, TaskStatus.SUBMITTED)
            submission = SubmissionRecord(
                id=str(uuid4()),
                task_id=task_id,
                solver_id=solver_id,
                file_url=file_url,
                file_name=file_name,
            )
            self._submissions.setdefault(task_id, []).append(submission)
            task.status = TaskStatus.SUBMITTED
            task.updated_at = submission.created_at
            return replace(task), submission

    def set_task_status(self, task_id: str, status: TaskStatus) -> TaskRecord:
        with self._lock:
            task = self._task(task_id)
            ensure_task_transition(task.status, status)
            task.status = status
            task.updated_at = utcnow()
            return replace(task)

    def list_submissions(self, task_id: str) -> list[SubmissionRecord]:
        with self._lock:
            return list(self._submissions.get(task_id, []))

    def latest_submission(self, task_id: str) -> SubmissionRecord | None:
        with self._lock:
            history = self._submissions.get(task_id)
            # Appended in order, so the tail is the newest row.
            return history[-1] if history else None

    # -- helpers (caller holds the lock) ---------------------------------

    def _project(self, project_id: str) -> ProjectRecord:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def _task(self, task_id: str) -> TaskRecord:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task
