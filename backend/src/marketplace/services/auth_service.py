from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta

from joserfc import jwt
from joserfc.errors import JoseError
from joserfc.jwk import OctKey

from marketplace.domain.core.schema import Actor, Role
from marketplace.domain.core.validate import normalise_email, validate_registration
from marketplace.infra.repositories.user_repository import UserRecord, UserRepository
from marketplace.services.errors import NotFoundError, UnauthenticatedError, ValidationError

logger = logging.getLogger(__name__)

_HASH_ALGORITHM = "pbkdf2_sha256"
_HASH_ITERATIONS = 260_000
_SELF_SERVICE_ROLES = frozenset({Role.BUYER, Role.PROBLEM_SOLVER})


def hash_password(password: str, *, iterations: int = _HASH_ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), iterations)
    return f"{_HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != _HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


@dataclass(frozen=True)
class AuthResult:
    user: UserRecord
    token: str


class AuthService:
    """
    Registration, login and bearer-token handling.

    Tokens are HS256 JWTs carrying the user id. verify() re-reads the user so
    the actor always has the role currently on record, not the one at login.
    """

    def __init__(self, users: UserRepository, secret: str, token_ttl: timedelta = timedelta(days=30)) -> None:
        self._users = users
        self._key = OctKey.import_key(secret)
        self._token_ttl = token_ttl
        self._claims = jwt.JWTClaimsRegistry(sub={"essential": True}, exp={"essential": True})

    def register(self, name: str, email: str, password: str, role: Role = Role.PROBLEM_SOLVER) -> AuthResult:
        clean_name, clean_email = validate_registration(name, email, password)
        if role not in _SELF_SERVICE_ROLES:
            raise ValidationError(f"Cannot self-register with role '{role.value}'")

        user = self._users.create(clean_name, clean_email, hash_password(password), role)
        logger.info("Registered user %s as %s", user.id, user.role.value)
        return AuthResult(user=user, token=self.issue_token(user))

    def ensure_admin(self, name: str, email: str, password: str) -> UserRecord:
        """Creates the bootstrap admin account unless that email is taken."""
        clean_name, clean_email = validate_registration(name, email, password)
        existing = self._users.find_by_email(clean_email)
        if existing is not None:
            return existing
        user = self._users.create(clean_name, clean_email, hash_password(password), Role.ADMIN)
        logger.info("Created admin account %s", user.id)
        return user

    def login(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = self._users.find_by_email(normalise_email(email))
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthenticatedError("Invalid email or password")
        return AuthResult(user=user, token=self.issue_token(user))

    def issue_token(self, user: UserRecord) -> str:
        issued_at = int(time.time())
        claims = {
            "sub": user.id,
            "role": user.role.value,
            "iat": issued_at,
            "exp": issued_at + int(self._token_ttl.total_seconds()),
        }
        return jwt.encode({"alg": "HS256"}, claims, self._key)

    def verify(self, token: str | None) -> Actor:
        if not token:
            raise UnauthenticatedError("Not authorized, no token")

        try:
            decoded = jwt.decode(token, self._key, algorithms=["HS256"])
            self._claims.validate(decoded.claims)
        except (JoseError, ValueError) as exc:
            logger.warning("Rejected bearer token: %s", exc)
            raise UnauthenticatedError("Not authorized, token invalid") from None

        try:
            user = self._users.get(str(decoded.claims["sub"]))
        except NotFoundError:
            raise UnauthenticatedError("Not authorized, user not found") from None
        return Actor(id=user.id, role=user.role)

    def current_user(self, actor: Actor) -> UserRecord:
        return self._users.get(actor.id)
