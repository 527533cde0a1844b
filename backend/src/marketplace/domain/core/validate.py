# core/validate.py
# Input checks run before any lookup or mutation. Each validator collects
# every problem it finds and raises a single ValidationError.

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import List, Optional

from marketplace.services.errors import ValidationError


TITLE_MAX = 200
DESCRIPTION_MAX = 5000
NAME_MAX = 120
PASSWORD_MIN = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")


# ------------------ API pública ------------------

@dataclass(frozen=True)
class ProjectFields:
    title: Optional[str]
    description: Optional[str]


@dataclass(frozen=True)
class TaskFields:
    title: str
    description: str
    timeline: datetime


def validate_project_fields(
    title: Optional[str],
    description: Optional[str],
    *,
    partial: bool = False,
) -> ProjectFields:
    """
    Normalises project title/description.
    - partial=False: both are required (creation).
    - partial=True: only supplied fields are checked, but at least one is needed.
    """
    errors: List[str] = []

    if partial and title is None and description is None:
        raise ValidationError("Provide a title or a description to update")

    clean_title = _text(title, "title", TITLE_MAX, errors, required=not partial)
    clean_description = _text(description, "description", DESCRIPTION_MAX, errors, required=not partial)

    if errors:
        raise ValidationError(errors)
    return ProjectFields(title=clean_title, description=clean_description)


def validate_task_fields(
    title: Optional[str],
    description: Optional[str],
    timeline: object,
) -> TaskFields:
    errors: List[str] = []

    clean_title = _text(title, "title", TITLE_MAX, errors, required=True)
    clean_description = _text(description, "description", DESCRIPTION_MAX, errors, required=True)
    deadline = None
    if timeline is None or (isinstance(timeline, str) and not timeline.strip()):
        errors.append("timeline is required")
    else:
        try:
            deadline = parse_timeline(timeline)
        except ValidationError as exc:
            errors.extend(exc.errors)

    if errors:
        raise ValidationError(errors)
    return TaskFields(title=clean_title, description=clean_description, timeline=deadline)


def parse_timeline(value: object) -> datetime:
    """Accepts ISO-8601 dates/datetimes; naive values are read as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"timeline '{value}' is not a valid date") from None
    else:
        raise ValidationError("timeline must be a date string")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def validate_registration(name: Optional[str], email: Optional[str], password: Optional[str]) -> tuple[str, str]:
    """Returns (name, normalised email)."""
    errors: List[str] = []

    clean_name = _text(name, "name", NAME_MAX, errors, required=True)
    clean_email = normalise_email(email)
    if not clean_email:
        errors.append("email is required")
    elif not _EMAIL_RE.match(clean_email):
        errors.append("Please add a valid email")
    if not password:
        errors.append("password is required")
    elif len(password) < PASSWORD_MIN:
        errors.append(f"password must have at least {PASSWORD_MIN} characters")

    if errors:
        raise ValidationError(errors)
    return clean_name, clean_email


def normalise_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


# ------------------ Helpers ------------------

def _text(value: Optional[str], field: str, limit: int, errors: List[str], *, required: bool) -> Optional[str]:
    if value is None:
        if required:
            errors.append(f"{field} is required")
        return None
    clean = value.strip()
    if not clean:
        errors.append(f"{field} must not be empty")
        return None
    if len(clean) > limit:
        errors.append(f"{field} must be at most {limit} characters")
        return None
    return clean
