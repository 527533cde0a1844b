from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from threading import Lock
from typing import Protocol
from uuid import uuid4

from marketplace.domain.core.schema import Role
from marketplace.infra.repositories.project_repository import utcnow
from marketplace.services.errors import ConflictError, NotFoundError


@dataclass
class UserRecord:
    id: str
    name: str
    email: str
    password_hash: str
    role: Role = Role.PROBLEM_SOLVER
    created_at: datetime = field(default_factory=utcnow)


class UserRepository(Protocol):
    def list(self) -> list[UserRecord]: ...

    def get(self, user_id: str) -> UserRecord: ...

    def find_by_email(self, email: str) -> UserRecord | None: ...

    def create(self, name: str, email: str, password_hash: str, role: Role) -> UserRecord: ...

    def set_role(self, user_id: str, role: Role) -> UserRecord: ...


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: dict[str, UserRecord] = {}

    def list(self) -> list[UserRecord]:
        with self._lock:
            rows = [replace(user) for user in self._users.values()]
        return sorted(rows, key=lambda user: user.created_at)

    def get(self, user_id: str) -> UserRecord:
        with self._lock:
            return replace(self._user(user_id))

    def find_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return replace(user)
        return None

    def create(self, name: str, email: str, password_hash: str, role: Role) -> UserRecord:
        user = UserRecord(id=str(uuid4()), name=name, email=email, password_hash=password_hash, role=role)
        with self._lock:
            if any(existing.email == email for existing in self._users.values()):
                raise ConflictError("User already exists")
            self._users[user.id] = user
            return replace(user)

    def set_role(self, user_id: str, role: Role) -> UserRecord:
        with self._lock:
            user = self._user(user_id)
            user.role = role
            return replace(user)

    def _user(self, user_id: str) -> UserRecord:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
