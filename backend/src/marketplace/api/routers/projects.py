from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from marketplace.api.deps import get_current_actor, get_project_service, get_request_service
from marketplace.api.schemas import (
    AssignRequest,
    AssignResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
    SolverRequestResponse,
)
from marketplace.domain.core.schema import Actor
from marketplace.infra.repositories.project_repository import ProjectRecord, SolverRequestRecord
from marketplace.services.project_service import ProjectService
from marketplace.services.request_service import SolverRequestService

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _to_project(project: ProjectRecord) -> ProjectResponse:
    return ProjectResponse.model_validate(project)


def _to_request(request: SolverRequestRecord) -> SolverRequestResponse:
    return SolverRequestResponse.model_validate(request)


@router.get("", response_model=list[ProjectResponse])
def list_projects(
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectResponse]:
    return [_to_project(project) for project in service.list_projects(actor)]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    body: ProjectCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return _to_project(service.create_project(actor, title=body.title, description=body.description))


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return _to_project(service.get_project(actor, project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    body: ProjectUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    project = service.edit_project(actor, project_id, title=body.title, description=body.description)
    return _to_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> Response:
    service.delete_project(actor, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/requests", response_model=list[SolverRequestResponse])
def list_requests(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SolverRequestService = Depends(get_request_service),
) -> list[SolverRequestResponse]:
    return [_to_request(request) for request in service.list_requests(actor, project_id)]


@router.post("/{project_id}/requests", response_model=SolverRequestResponse, status_code=status.HTTP_201_CREATED)
def request_to_work(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SolverRequestService = Depends(get_request_service),
) -> SolverRequestResponse:
    return _to_request(service.request_to_work(actor, project_id))


@router.patch("/{project_id}/assign", response_model=AssignResponse)
def assign_solver(
    project_id: str,
    body: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> AssignResponse:
    project = service.assign_solver(actor, project_id, body.request_id)
    return AssignResponse(message="Solver assigned successfully", project=_to_project(project))


@router.patch("/{project_id}/complete", response_model=ProjectResponse)
def complete_project(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return _to_project(service.complete_project(actor, project_id))
