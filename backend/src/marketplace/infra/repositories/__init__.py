from marketplace.infra.repositories.project_repository import (
    InMemoryProjectRepository,
    ProjectRecord,
    ProjectRepository,
    SolverRequestRecord,
    SubmissionRecord,
    TaskRecord,
)
from marketplace.infra.repositories.user_repository import (
    InMemoryUserRepository,
    UserRecord,
    UserRepository,
)

__all__ = [
    "InMemoryProjectRepository",
    "InMemoryUserRepository",
    "ProjectRecord",
    "ProjectRepository",
    "SolverRequestRecord",
    "SubmissionRecord",
    "TaskRecord",
    "UserRecord",
    "UserRepository",
]
