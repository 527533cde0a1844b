from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.domain.core.schema import ProjectStatus, RequestStatus, Role, TaskStatus


class ErrorResponse(BaseModel):
    detail: str | list[str]
    error: str | None = None


class HealthResponse(BaseModel):
    status: str
    name: str
    version: str


# ---------- auth & users ----------

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1)
    role: Role = Role.PROBLEM_SOLVER


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime


class AuthResponse(UserResponse):
    token: str


class RoleUpdateRequest(BaseModel):
    role: Role


# ---------- projects & requests ----------

class ProjectCreateRequest(BaseModel):
    # Blank values are refused by the service with a readable message.
    title: str | None = None
    description: str | None = None


class ProjectUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None


class AssignRequest(BaseModel):
    request_id: str = Field(alias="requestId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    buyer_id: str
    solver_id: str | None = None
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime


class SolverRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    solver_id: str
    status: RequestStatus
    created_at: datetime


# ---------- tasks & submissions ----------

class TaskCreateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    timeline: str | None = None


class ReviewRequest(BaseModel):
    # Checked by the service so an unknown action is a 400, not a 422.
    action: str | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    solver_id: str
    title: str
    description: str
    timeline: datetime
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    solver_id: str
    file_url: str
    file_name: str
    created_at: datetime


class SubmitResponse(BaseModel):
    message: str
    task: TaskResponse
    submission: SubmissionResponse


class AssignResponse(BaseModel):
    message: str
    project: ProjectResponse
