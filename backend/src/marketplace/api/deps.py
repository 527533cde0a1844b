from __future__ import annotations

from collections.abc import Generator
from datetime import timedelta

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from marketplace.domain.core.schema import Actor
from marketplace.infra.repositories.project_repository import InMemoryProjectRepository, ProjectRepository
from marketplace.infra.repositories.user_repository import InMemoryUserRepository, UserRepository
from marketplace.infra.storage.blob_store import BlobStore, LocalBlobStore
from marketplace.services.auth_service import AuthService
from marketplace.services.errors import UnauthenticatedError
from marketplace.services.project_service import ProjectService
from marketplace.services.request_service import SolverRequestService
from marketplace.services.task_service import TaskService
from marketplace.services.user_service import UserService
from marketplace.settings import Settings, load_settings

settings = load_settings()
_memory_project_repository = InMemoryProjectRepository()
_memory_user_repository = InMemoryUserRepository()


def get_settings() -> Settings:
    return settings


def _uses_sql(active: Settings) -> bool:
    return active.db_backend == "sql"


def get_db_session(active: Settings = Depends(get_settings)) -> Generator[Session | None, None, None]:
    """Request-scoped session, or None when the app runs on the memory backend."""
    if not _uses_sql(active):
        yield None
        return

    from marketplace.infra.db.session import get_db

    yield from get_db(active.database_url)


def get_project_repository(db: Session | None = Depends(get_db_session)) -> ProjectRepository:
    if db is None:
        return _memory_project_repository

    from marketplace.infra.repositories.sql_project_repository import SqlProjectRepository

    return SqlProjectRepository(db)


def get_user_repository(db: Session | None = Depends(get_db_session)) -> UserRepository:
    if db is None:
        return _memory_user_repository

    from marketplace.infra.repositories.sql_user_repository import SqlUserRepository

    return SqlUserRepository(db)


def get_blob_store(active: Settings = Depends(get_settings)) -> BlobStore:
    return LocalBlobStore(active.upload_dir, max_bytes=active.max_upload_bytes)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    active: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(users, secret=active.jwt_secret, token_ttl=timedelta(days=active.token_ttl_days))


def get_user_service(users: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repository=users)


def get_project_service(repository: ProjectRepository = Depends(get_project_repository)) -> ProjectService:
    return ProjectService(repository=repository)


def get_request_service(repository: ProjectRepository = Depends(get_project_repository)) -> SolverRequestService:
    return SolverRequestService(repository=repository)


def get_task_service(
    repository: ProjectRepository = Depends(get_project_repository),
    blob_store: BlobStore = Depends(get_blob_store),
) -> TaskService:
    return TaskService(repository=repository, blob_store=blob_store)


def get_current_actor(
    authorization: str | None = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> Actor:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthenticatedError("Not authorized, no token")
    return auth.verify(authorization[len("Bearer "):].strip())


def bootstrap_admin(active: Settings) -> None:
    """Seeds the admin account named in settings, if any."""
    if not (active.admin_email and active.admin_password):
        return

    if _uses_sql(active):
        from marketplace.infra.db.session import get_db
        from marketplace.infra.repositories.sql_user_repository import SqlUserRepository

        for db in get_db(active.database_url):
            AuthService(SqlUserRepository(db), secret=active.jwt_secret).ensure_admin(
                "Admin", active.admin_email, active.admin_password
            )
        return

    AuthService(_memory_user_repository, secret=active.jwt_secret).ensure_admin(
        "Admin", active.admin_email, active.admin_password
    )
