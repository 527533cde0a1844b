from marketplace.domain.core.schema import (
    Actor,
    ProjectStatus,
    RequestStatus,
    ReviewDecision,
    Role,
    TaskStatus,
)

__all__ = ["Actor", "ProjectStatus", "RequestStatus", "ReviewDecision", "Role", "TaskStatus"]
