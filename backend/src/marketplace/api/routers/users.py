from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace.api.deps import get_current_actor, get_user_service
from marketplace.api.schemas import RoleUpdateRequest, UserResponse
from marketplace.domain.core.schema import Actor
from marketplace.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
def list_users(
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
) -> list[UserResponse]:
    return [UserResponse.model_validate(user) for user in service.list_users(actor)]


@router.patch("/{user_id}/role", response_model=UserResponse)
def update_role(
    user_id: str,
    body: RoleUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.model_validate(service.change_role(actor, user_id, body.role))
