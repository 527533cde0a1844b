from __future__ import annotations

import logging

from marketplace.domain.access.policy import Action, require
from marketplace.domain.core.schema import Actor, Role
from marketplace.infra.repositories.user_repository import UserRecord, UserRepository
from marketplace.services.errors import ValidationError

logger = logging.getLogger(__name__)

# Admins promote solvers to buyers; nobody is promoted to Admin here.
_ASSIGNABLE_ROLES = frozenset({Role.BUYER})


class UserService:
    """Admin-only user management, including the role-change event."""

    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    def list_users(self, actor: Actor) -> list[UserRecord]:
        require(actor, Action.MANAGE_USERS)
        return self._repository.list()

    def change_role(self, actor: Actor, user_id: str, role: Role) -> UserRecord:
        require(actor, Action.MANAGE_USERS)
        if role not in _ASSIGNABLE_ROLES:
            raise ValidationError("Admin can only assign the Buyer role")

        target = self._repository.get(user_id)
        if target.role is Role.ADMIN:
            raise ValidationError("Cannot change role of another Admin")

        user = self._repository.set_role(user_id, role)
        logger.info("User %s is now %s (changed by %s)", user.id, role.value, actor.id)
        return user
