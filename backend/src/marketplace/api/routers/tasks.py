from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status

from marketplace.api.deps import get_current_actor, get_task_service
from marketplace.api.schemas import (
    ReviewRequest,
    SubmissionResponse,
    SubmitResponse,
    TaskCreateRequest,
    TaskResponse,
)
from marketplace.domain.core.schema import Actor
from marketplace.infra.repositories.project_repository import TaskRecord
from marketplace.services.task_service import TaskService

router = APIRouter(prefix="/api", tags=["tasks"])


def _to_task(task: TaskRecord) -> TaskResponse:
    return TaskResponse.model_validate(task)


@router.get("/projects/{project_id}/tasks", response_model=list[TaskResponse])
def list_tasks(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
) -> list[TaskResponse]:
    return [_to_task(task) for task in service.list_tasks(actor, project_id)]


@router.post("/projects/{project_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: str,
    body: TaskCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    task = service.create_task(
        actor,
        project_id,
        title=body.title,
        description=body.description,
        timeline=body.timeline,
    )
    return _to_task(task)


@router.post("/tasks/{task_id}/submit", response_model=SubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_task(
    task_id: str,
    file: UploadFile | None = File(default=None),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
) -> SubmitResponse:
    task, submission = service.submit_task(
        actor,
        task_id,
        file_name=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        stream=file.file if file is not None else None,
    )
    return SubmitResponse(
        message="Task submitted successfully",
        task=_to_task(task),
        submission=SubmissionResponse.model_validate(submission),
    )


@router.patch("/tasks/{task_id}/review", response_model=TaskResponse)
def review_task(
    task_id: str,
    body: ReviewRequest,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return _to_task(service.review_task(actor, task_id, body.action))


@router.get("/tasks/{task_id}/submission", response_model=SubmissionResponse)
def latest_submission(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
) -> SubmissionResponse:
    return SubmissionResponse.model_validate(service.get_latest_submission(actor, task_id))


@router.get("/tasks/{task_id}/submissions", response_model=list[SubmissionResponse])
def list_submissions(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
) -> list[SubmissionResponse]:
    return [SubmissionResponse.model_validate(row) for row in service.list_submissions(actor, task_id)]
