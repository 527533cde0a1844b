from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace.api.deps import get_current_actor, get_project_service
from marketplace.api.schemas import ProjectResponse
from marketplace.domain.core.schema import Actor
from marketplace.services.project_service import ProjectService

router = APIRouter(prefix="/api/solver", tags=["solver"])


@router.get("/my-project", response_model=ProjectResponse)
def my_project(
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return ProjectResponse.model_validate(service.get_my_project(actor))
