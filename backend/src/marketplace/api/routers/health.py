from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace.api.deps import get_settings
from marketplace.api.schemas import HealthResponse
from marketplace.settings import Settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health(active: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", name=active.app_name, version=active.app_version)
