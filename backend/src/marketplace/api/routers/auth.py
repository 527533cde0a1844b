from __future__ import annotations

from fastapi import APIRouter, Depends, status

from marketplace.api.deps import get_auth_service, get_current_actor
from marketplace.api.schemas import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from marketplace.domain.core.schema import Actor
from marketplace.services.auth_service import AuthResult, AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _to_auth(result: AuthResult) -> AuthResponse:
    user = UserResponse.model_validate(result.user)
    return AuthResponse(**user.model_dump(), token=result.token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> AuthResponse:
    return _to_auth(service.register(body.name, body.email, body.password, role=body.role))


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)) -> AuthResponse:
    return _to_auth(service.login(body.email, body.password))


@router.get("/me", response_model=UserResponse)
def me(
    actor: Actor = Depends(get_current_actor),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return UserResponse.model_validate(service.current_user(actor))
