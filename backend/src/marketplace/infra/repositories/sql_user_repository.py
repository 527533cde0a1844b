from __future__ import annotations

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.domain.core.schema import Role
from marketplace.infra.db.models import UserModel
from marketplace.infra.repositories.sql_project_repository import as_utc
from marketplace.infra.repositories.user_repository import UserRecord, UserRepository
from marketplace.services.errors import ConflictError, NotFoundError


class SqlUserRepository(UserRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def _to_record(self, model: UserModel) -> UserRecord:
        return UserRecord(
            id=model.id,
            name=model.name,
            email=model.email,
            password_hash=model.password_hash,
            role=model.role,
            created_at=as_utc(model.created_at),
        )

    def list(self) -> list[UserRecord]:
        rows = self._db.scalars(select(UserModel).order_by(UserModel.created_at.asc()))
        return [self._to_record(row) for row in rows]

    def get(self, user_id: str) -> UserRecord:
        row = self._db.get(UserModel, user_id)
        if row is None:
            raise NotFoundError("User", user_id)
        return self._to_record(row)

    def find_by_email(self, email: str) -> UserRecord | None:
        row = self._db.scalars(select(UserModel).where(UserModel.email == email)).first()
        return self._to_record(row) if row is not None else None

    def create(self, name: str, email: str, password_hash: str, role: Role) -> UserRecord:
        if self.find_by_email(email) is not None:
            raise ConflictError("User already exists")

        model = UserModel(id=str(uuid4()), name=name, email=email, password_hash=password_hash, role=role)
        self._db.add(model)
        try:
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            raise ConflictError("User already exists") from None
        self._db.refresh(model)
        return self._to_record(model)

    def set_role(self, user_id: str, role: Role) -> UserRecord:
        model = self._db.get(UserModel, user_id)
        if model is None:
            raise NotFoundError("User", user_id)
        model.role = role
        self._db.add(model)
        self._db.commit()
        self._db.refresh(model)
        return self._to_record(model)
