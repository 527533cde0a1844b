# core/schema.py
# Closed vocabularies shared by every layer: roles, lifecycle states, actors.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# ---------- Enums ----------

class Role(str, Enum):
    ADMIN = "Admin"
    BUYER = "Buyer"
    PROBLEM_SOLVER = "Problem Solver"


class ProjectStatus(str, Enum):
    UNASSIGNED = "Unassigned"
    ASSIGNED = "Assigned"
    COMPLETED = "Completed"


class RequestStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class TaskStatus(str, Enum):
    IN_PROGRESS = "In-progress"
    SUBMITTED = "Submitted"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class ReviewDecision(str, Enum):
    """What a buyer can do with a submitted task."""
    ACCEPT = "accept"
    REJECT = "reject"


# ---------- Entidades ----------

@dataclass(frozen=True)
class Actor:
    """The authenticated caller, with the role read at call time."""
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
