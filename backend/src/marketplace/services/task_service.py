from __future__ import annotations

import logging
from typing import BinaryIO

from marketplace.domain.access.policy import Action, require, require_role
from marketplace.domain.core.schema import Actor, ReviewDecision, TaskStatus
from marketplace.domain.core.transitions import ensure_task_transition
from marketplace.domain.core.validate import validate_task_fields
from marketplace.infra.repositories.project_repository import (
    ProjectRepository,
    SubmissionRecord,
    TaskRecord,
)
from marketplace.infra.storage.blob_store import BlobStore
from marketplace.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_REVIEW_OUTCOMES = {
    ReviewDecision.ACCEPT: TaskStatus.COMPLETED,
    ReviewDecision.REJECT: TaskStatus.REJECTED,
}


class TaskService:
    """
    Tasks under an assigned project and their submit/review cycle:

        In-progress -> Submitted -> Completed
                          |  ^
                          v  |
                        Rejected
    """

    def __init__(self, repository: ProjectRepository, blob_store: BlobStore) -> None:
        self._repository = repository
        self._blob_store = blob_store

    def create_task(
        self,
        actor: Actor,
        project_id: str,
        title: str | None,
        description: str | None,
        timeline: object,
    ) -> TaskRecord:
        require_role(actor, Action.CREATE_TASK)
        fields = validate_task_fields(title, description, timeline)
        project = self._repository.get(project_id)
        require(actor, Action.CREATE_TASK, project)
        task = self._repository.add_task(
            project_id,
            actor.id,
            title=fields.title,
            description=fields.description,
            timeline=fields.timeline,
        )
        logger.info("Task %s created on project %s", task.id, project_id)
        return task

    def list_tasks(self, actor: Actor, project_id: str) -> list[TaskRecord]:
        project = self._repository.get(project_id)
        require(actor, Action.VIEW_TASKS, project)
        return self._repository.list_tasks(project_id)

    def submit_task(
        self,
        actor: Actor,
        task_id: str,
        file_name: str | None,
        content_type: str | None,
        stream: BinaryIO | None,
    ) -> tuple[TaskRecord, SubmissionRecord]:
        require_role(actor, Action.SUBMIT_TASK)
        task = self._repository.get_task(task_id)
        require(actor, Action.SUBMIT_TASK, task)
        # Refuse before touching the blob store; the repository re-checks atomically.
        ensure_task_transition(task.status, TaskStatus.SUBMITTED)
        if stream is None or not file_name:
            raise ValidationError("Please upload a ZIP file")

        stored = self._blob_store.store(file_name, content_type, stream)
        try:
            task, submission = self._repository.record_submission(
                task_id,
                actor.id,
                file_url=stored.file_url,
                file_name=stored.file_name,
            )
        except Exception:
            self._blob_store.discard(stored)
            raise
        logger.info("Task %s submitted (%s)", task_id, submission.file_name)
        return task, submission

    def review_task(self, actor: Actor, task_id: str, decision: ReviewDecision | str) -> TaskRecord:
        require_role(actor, Action.REVIEW_TASK)
        try:
            decision = ReviewDecision(decision)
        except ValueError:
            raise ValidationError('Action must be "accept" or "reject"') from None

        task = self._repository.get_task(task_id)
        project = self._repository.get(task.project_id)
        require(actor, Action.REVIEW_TASK, project)
        task = self._repository.set_task_status(task_id, _REVIEW_OUTCOMES[decision])
        logger.info("Task %s reviewed: %s", task_id, task.status.value)
        return task

    def get_latest_submission(self, actor: Actor, task_id: str) -> SubmissionRecord:
        task = self._repository.get_task(task_id)
        project = self._repository.get(task.project_id)
        require(actor, Action.VIEW_SUBMISSION, project)
        submission = self._repository.latest_submission(task_id)
        if submission is None:
            raise NotFoundError("Submission", task_id, "No submission found")
        return submission

    def list_submissions(self, actor: Actor, task_id: str) -> list[SubmissionRecord]:
        task = self._repository.get_task(task_id)
        project = self._repository.get(task.project_id)
        require(actor, Action.VIEW_SUBMISSION, project)
        return self._repository.list_submissions(task_id)
