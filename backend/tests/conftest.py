from __future__ import annotations

import io

import pytest

from marketplace.domain.core.schema import Actor, Role
from marketplace.infra.repositories.project_repository import InMemoryProjectRepository
from marketplace.infra.storage.blob_store import LocalBlobStore
from marketplace.services.project_service import ProjectService
from marketplace.services.request_service import SolverRequestService
from marketplace.services.task_service import TaskService

ZIP_BYTES = b"PK\x03\x04" + b"\x00" * 64


@pytest.fixture
def zip_file():
    """Factory for in-memory archives handed to submit_task."""
    return lambda content=ZIP_BYTES: io.BytesIO(content)


@pytest.fixture
def buyer() -> Actor:
    return Actor(id="buyer-1", role=Role.BUYER)


@pytest.fixture
def other_buyer() -> Actor:
    return Actor(id="buyer-2", role=Role.BUYER)


@pytest.fixture
def solver() -> Actor:
    return Actor(id="solver-1", role=Role.PROBLEM_SOLVER)


@pytest.fixture
def other_solver() -> Actor:
    return Actor(id="solver-2", role=Role.PROBLEM_SOLVER)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def repository() -> InMemoryProjectRepository:
    return InMemoryProjectRepository()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads", max_bytes=1024, url_prefix="uploads/submissions")


@pytest.fixture
def projects(repository) -> ProjectService:
    return ProjectService(repository=repository)


@pytest.fixture
def requests(repository) -> SolverRequestService:
    return SolverRequestService(repository=repository)


@pytest.fixture
def tasks(repository, blob_store) -> TaskService:
    return TaskService(repository=repository, blob_store=blob_store)


@pytest.fixture
def assigned_project(projects, requests, buyer, solver, other_solver):
    """Scenario: two solvers ask, the first one is taken."""
    project = projects.create_project(buyer, "Build X", "A marketplace feature with 20+ chars of detail")
    accepted = requests.request_to_work(solver, project.id)
    requests.request_to_work(other_solver, project.id)
    return projects.assign_solver(buyer, project.id, accepted.id)
