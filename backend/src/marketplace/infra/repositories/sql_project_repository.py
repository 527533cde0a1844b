from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.domain.core.schema import ProjectStatus, RequestStatus, TaskStatus
from marketplace.domain.core.transitions import (
    ensure_accepts_tasks,
    ensure_completable,
    ensure_project_editable,
    ensure_project_transition,
    ensure_request_transition,
    ensure_task_transition,
)
from marketplace.infra.db.models import ProjectModel, SolverRequestModel, SubmissionModel, TaskModel
from marketplace.infra.repositories.project_repository import (
    ProjectRecord,
    ProjectRepository,
    SolverRequestRecord,
    SubmissionRecord,
    TaskRecord,
    utcnow,
)
from marketplace.services.errors import ConflictError, InvalidStateError, NotFoundError


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlProjectRepository(ProjectRepository):
    """
    Each mutating method is one transaction. Status changes are issued as
    conditional UPDATEs on the expected status, so a concurrent writer that
    got there first makes the rowcount 0 and the whole unit rolls back.

    Anything that writes under a project (requests, tasks, deletion,
    completion) first claims the project row with such an UPDATE, even when
    only ``updated_at`` changes. That row lock orders the unit against a
    concurrent assign or complete on every backend, SQLite included.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

    # -- mapping ----------------------------------------------------------

    def _to_project(self, model: ProjectModel) -> ProjectRecord:
        return ProjectRecord(
            id=model.id,
            title=model.title,
            description=model.description,
            buyer_id=model.buyer_id,
            solver_id=model.solver_id,
            status=model.status,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    def _to_request(self, model: SolverRequestModel) -> SolverRequestRecord:
        return SolverRequestRecord(
            id=model.id,
            project_id=model.project_id,
            solver_id=model.solver_id,
            status=model.status,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    def _to_task(self, model: TaskModel) -> TaskRecord:
        return TaskRecord(
            id=model.id,
            project_id=model.project_id,
            solver_id=model.solver_id,
            title=model.title,
            description=model.description,
            timeline=as_utc(model.timeline),
            status=model.status,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    def _to_submission(self, model: SubmissionModel) -> SubmissionRecord:
        return SubmissionRecord(
            id=model.id,
            task_id=model.task_id,
            solver_id=model.solver_id,
            file_url=model.file_url,
            file_name=model.file_name,
            created_at=as_utc(model.created_at),
        )

    def _project_model(self, project_id: str) -> ProjectModel:
        model = self._db.get(ProjectModel, project_id)
        if model is None:
            raise NotFoundError("Project", project_id)
        return model

    def _task_model(self, task_id: str) -> TaskModel:
        model = self._db.get(TaskModel, task_id)
        if model is None:
            raise NotFoundError("Task", task_id)
        return model

    def _swap_project_status(self, project_id: str, expected: ProjectStatus, **values: object) -> None:
        result = self._db.execute(
            update(ProjectModel)
            .where(ProjectModel.id == project_id, ProjectModel.status == expected)
            .values(updated_at=utcnow(), **values)
        )
        if result.rowcount != 1:
            raise InvalidStateError(f"Project is no longer {expected.value}")

    def _claim_project(self, project_id: str, expected: ProjectStatus) -> None:
        """Locks the project row for this unit, provided it is still ``expected``."""
        self._swap_project_status(project_id, expected)

    def _swap_task_status(self, task_id: str, expected: TaskStatus, target: TaskStatus) -> None:
        result = self._db.execute(
            update(TaskModel)
            .where(TaskModel.id == task_id, TaskModel.status == expected)
            .values(status=target, updated_at=utcnow())
        )
        if result.rowcount != 1:
            raise InvalidStateError(f"Task is no longer {expected.value}")

    # -- projects -------------------------------------------------------

    def list_projects(
        self,
        *,
        buyer_id: str | None = None,
        status: ProjectStatus | None = None,
    ) -> list[ProjectRecord]:
        query = select(ProjectModel).order_by(ProjectModel.created_at.asc())
        if buyer_id is not None:
            query = query.where(ProjectModel.buyer_id == buyer_id)
        if status is not None:
            query = query.where(ProjectModel.status == status)
        return [self._to_project(row) for row in self._db.scalars(query)]

    def get(self, project_id: str) -> ProjectRecord:
        return self._to_project(self._project_model(project_id))

    def find_assigned_to(self, solver_id: str) -> ProjectRecord | None:
        row = self._db.scalars(
            select(ProjectModel)
            .where(ProjectModel.solver_id == solver_id, ProjectModel.status == ProjectStatus.ASSIGNED)
            .order_by(ProjectModel.created_at.asc())
            .limit(1)
        ).first()
        return self._to_project(row) if row is not None else None

    def create(self, buyer_id: str, title: str, description: str) -> ProjectRecord:
        model = ProjectModel(
            id=str(uuid4()),
            title=title,
            description=description,
            buyer_id=buyer_id,
            solver_id=None,
            status=ProjectStatus.UNASSIGNED,
        )
        with self._unit_of_work():
            self._db.add(model)
        self._db.refresh(model)
        return self._to_project(model)

    def update(
        self,
        project_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> ProjectRecord:
        values: dict[str, object] = {}
        if title is not None:
            values["title"] = title
        if description is not None:
            values["description"] = description

        with self._unit_of_work():
            model = self._project_model(project_id)
            ensure_project_editable(model.status)
            self._swap_project_status(project_id, ProjectStatus.UNASSIGNED, **values)
        return self.get(project_id)

    def delete(self, project_id: str) -> None:
        with self._unit_of_work():
            model = self._project_model(project_id)
            ensure_project_editable(model.status)
            self._claim_project(project_id, ProjectStatus.UNASSIGNED)
            self._db.execute(delete(SolverRequestModel).where(SolverRequestModel.project_id == project_id))
            result = self._db.execute(
                delete(ProjectModel).where(
                    ProjectModel.id == project_id,
                    ProjectModel.status == ProjectStatus.UNASSIGNED,
                )
            )
            if result.rowcount != 1:
                raise InvalidStateError("Project is no longer Unassigned")

    # -- solver requests ------------------------------------------------

    def add_request(self, project_id: str, solver_id: str) -> SolverRequestRecord:
        model = SolverRequestModel(
            id=str(uuid4()),
            project_id=project_id,
            solver_id=solver_id,
            status=RequestStatus.PENDING,
        )
        try:
            with self._unit_of_work():
                project = self._project_model(project_id)
                ensure_project_transition(project.status, ProjectStatus.ASSIGNED)
                self._claim_project(project_id, ProjectStatus.UNASSIGNED)
                existing = self._db.scalars(
                    select(SolverRequestModel.id).where(
                        SolverRequestModel.project_id == project_id,
                        SolverRequestModel.solver_id == solver_id,
                    )
                ).first()
                if existing is not None:
                    raise ConflictError("You have already requested to work on this project")
                self._db.add(model)
        except IntegrityError:
            # Lost the race against an identical insert.
            raise ConflictError("You have already requested to work on this project") from None
        self._db.refresh(model)
        return self._to_request(model)

    def list_requests(self, project_id: str) -> list[SolverRequestRecord]:
        self._project_model(project_id)
        rows = self._db.scalars(
            select(SolverRequestModel)
            .where(SolverRequestModel.project_id == project_id)
            .order_by(SolverRequestModel.created_at.asc())
        )
        return [self._to_request(row) for row in rows]

    def assign(self, project_id: str, request_id: str) -> ProjectRecord:
        with self._unit_of_work():
            project = self._project_model(project_id)
            ensure_project_transition(project.status, ProjectStatus.ASSIGNED)

            accepted = self._db.get(SolverRequestModel, request_id)
            if accepted is None or accepted.project_id != project_id:
                raise NotFoundError("Request", request_id, "Request not found for this project")
            ensure_request_transition(accepted.status, RequestStatus.ACCEPTED)

            self._swap_project_status(
                project_id,
                ProjectStatus.UNASSIGNED,
                status=ProjectStatus.ASSIGNED,
                solver_id=accepted.solver_id,
            )
            now = utcnow()
            self._db.execute(
                update(SolverRequestModel)
                .where(SolverRequestModel.id == request_id)
                .values(status=RequestStatus.ACCEPTED, updated_at=now)
            )
            self._db.execute(
                update(SolverRequestModel)
                .where(
                    SolverRequestModel.project_id == project_id,
                    SolverRequestModel.id != request_id,
                    SolverRequestModel.status == RequestStatus.PENDING,
                )
                .values(status=RequestStatus.REJECTED, updated_at=now)
            )
        return self.get(project_id)

    def complete(self, project_id: str) -> ProjectRecord:
        with self._unit_of_work():
            project = self._project_model(project_id)
            ensure_project_transition(project.status, ProjectStatus.COMPLETED)
            # Claim the row before reading tasks so no task can be added after the check.
            self._swap_project_status(project_id, ProjectStatus.ASSIGNED, status=ProjectStatus.COMPLETED)
            statuses = self._db.scalars(select(TaskModel.status).where(TaskModel.project_id == project_id))
            ensure_completable(ProjectStatus.ASSIGNED, statuses)
        return self.get(project_id)

    # -- tasks and submissions -------------------------------------------

    def add_task(
        self,
        project_id: str,
        solver_id: str,
        title: str,
        description: str,
        timeline: datetime,
    ) -> TaskRecord:
        model = TaskModel(
            id=str(uuid4()),
            project_id=project_id,
            solver_id=solver_id,
            title=title,
            description=description,
            timeline=timeline,
            status=TaskStatus.IN_PROGRESS,
        )
        with self._unit_of_work():
            project = self._project_model(project_id)
            ensure_accepts_tasks(project.status)
            if project.solver_id != solver_id:
                raise InvalidStateError("Project is not assigned to this solver")
            self._claim_project(project_id, ProjectStatus.ASSIGNED)
            self._db.add(model)
        self._db.refresh(model)
        return self._to_task(model)

    def list_tasks(self, project_id: str) -> list[TaskRecord]:
        rows = self._db.scalars(
            select(TaskModel).where(TaskModel.project_id == project_id).order_by(TaskModel.created_at.asc())
        )
        return [self._to_task(row) for row in rows]

    def get_task(self, task_id: str) -> TaskRecord:
        return self._to_task(self._task_model(task_id))

    def record_submission(
        self,
        task_id: str,
        solver_id: str,
        file_url: str,
        file_name: str,
    ) -> tuple[TaskRecord, SubmissionRecord]:
        submission = SubmissionModel(
            id=str(uuid4()),
            task_id=task_id,
            solver_id=solver_id,
            file_url=file_url,
            file_name=file_name,
            created_at=utcnow(),
        )
        with self._unit_of_work():
            task = self._task_model(task_id)
            current = task.status
            ensure_task_transition(current, TaskStatus.SUBMITTED)
            self._swap_task_status(task_id, current, TaskStatus.SUBMITTED)
            self._db.add(submission)
        self._db.refresh(submission)
        return self.get_task(task_id), self._to_submission(submission)

    def set_task_status(self, task_id: str, status: TaskStatus) -> TaskRecord:
        with self._unit_of_work():
            task = self._task_model(task_id)
            current = task.status
            ensure_task_transition(current, status)
            self._swap_task_status(task_id, current, status)
        return self.get_task(task_id)

    def list_submissions(self, task_id: str) -> list[SubmissionRecord]:
        rows = self._db.scalars(
            select(SubmissionModel)
            .where(SubmissionModel.task_id == task_id)
            .order_by(SubmissionModel.created_at.asc())
        )
        return [self._to_submission(row) for row in rows]

    def latest_submission(self, task_id: str) -> SubmissionRecord | None:
        row = self._db.scalars(
            select(SubmissionModel)
            .where(SubmissionModel.task_id == task_id)
            .order_by(SubmissionModel.created_at.desc())
            .limit(1)
        ).first()
        return self._to_submission(row) if row is not None else None
