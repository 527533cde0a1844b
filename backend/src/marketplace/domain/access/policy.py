# access/policy.py
# Authorization gate: one policy per action, checked as role first, then
# ownership of the resource the action touches.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from marketplace.domain.core.schema import Actor, Role
from marketplace.services.errors import OwnershipForbiddenError, RoleForbiddenError

logger = logging.getLogger(__name__)

_ALL_ROLES = frozenset(Role)


class Action(str, Enum):
    CREATE_PROJECT = "create_project"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"
    LIST_REQUESTS = "list_requests"
    ASSIGN_SOLVER = "assign_solver"
    COMPLETE_PROJECT = "complete_project"
    REQUEST_TO_WORK = "request_to_work"
    VIEW_MY_PROJECT = "view_my_project"
    CREATE_TASK = "create_task"
    SUBMIT_TASK = "submit_task"
    REVIEW_TASK = "review_task"
    VIEW_TASKS = "view_tasks"
    VIEW_SUBMISSION = "view_submission"
    MANAGE_USERS = "manage_users"


class DenialKind(str, Enum):
    ROLE = "role"
    OWNERSHIP = "ownership"


@dataclass(frozen=True)
class Policy:
    roles: FrozenSet[Role]
    # Attribute names on the resource holding an owning party's user id;
    # matching any one of them passes.
    owners: Tuple[str, ...] = ()
    # Roles that skip the ownership check.
    unscoped: FrozenSet[Role] = field(default_factory=frozenset)
    denial: str = "Not authorized to perform this action"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    kind: Optional[DenialKind] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, kind: DenialKind, reason: str) -> "Decision":
        return cls(allowed=False, kind=kind, reason=reason)


_BUYER = frozenset({Role.BUYER})
_SOLVER = frozenset({Role.PROBLEM_SOLVER})

POLICIES: Dict[Action, Policy] = {
    Action.CREATE_PROJECT: Policy(roles=_BUYER),
    Action.EDIT_PROJECT: Policy(_BUYER, ("buyer_id",), denial="Not authorized to edit this project"),
    Action.DELETE_PROJECT: Policy(_BUYER, ("buyer_id",), denial="Not authorized to delete this project"),
    Action.LIST_REQUESTS: Policy(
        _BUYER, ("buyer_id",), denial="Not authorized to view requests for this project"
    ),
    Action.ASSIGN_SOLVER: Policy(
        _BUYER, ("buyer_id",), denial="Not authorized to assign solvers for this project"
    ),
    Action.COMPLETE_PROJECT: Policy(_BUYER, ("buyer_id",), denial="Not authorized to complete this project"),
    Action.REQUEST_TO_WORK: Policy(roles=_SOLVER),
    Action.VIEW_MY_PROJECT: Policy(roles=_SOLVER),
    Action.CREATE_TASK: Policy(
        _SOLVER, ("solver_id",), denial="You are not the assigned solver for this project"
    ),
    Action.SUBMIT_TASK: Policy(_SOLVER, ("solver_id",), denial="You are not assigned to this task"),
    Action.REVIEW_TASK: Policy(_BUYER, ("buyer_id",), denial="Not authorized to review this task"),
    Action.VIEW_TASKS: Policy(
        _ALL_ROLES,
        ("buyer_id", "solver_id"),
        unscoped=frozenset({Role.ADMIN}),
        denial="Not authorized to view tasks for this project",
    ),
    Action.VIEW_SUBMISSION: Policy(
        _ALL_ROLES,
        ("buyer_id", "solver_id"),
        unscoped=frozenset({Role.ADMIN}),
        denial="Not authorized to view submissions for this task",
    ),
    Action.MANAGE_USERS: Policy(roles=frozenset({Role.ADMIN})),
}


def authorize_role(actor: Actor, action: Action) -> Decision:
    """Role check alone; runs before the resource has been looked up."""
    if actor.role not in POLICIES[action].roles:
        return Decision.deny(
            DenialKind.ROLE,
            f"Role '{actor.role.value}' is not authorized to {action.value.replace('_', ' ')}",
        )
    return Decision.allow()


def authorize(actor: Actor, action: Action, resource: object = None) -> Decision:
    """
    Runs the role check, then (for owner-scoped actions) the ownership check.
    Pass the resource whose owner fields the policy names; it may be omitted
    only when the policy has no owner fields or the actor's role is unscoped.
    """
    policy = POLICIES[action]

    decision = authorize_role(actor, action)
    if not decision.allowed:
        return decision

    if not policy.owners or actor.role in policy.unscoped:
        return decision

    if resource is None:
        raise ValueError(f"{action.value} needs a resource for the ownership check")

    if any(getattr(resource, owner, None) == actor.id for owner in policy.owners):
        return decision
    return Decision.deny(DenialKind.OWNERSHIP, policy.denial)


def require_role(actor: Actor, action: Action) -> None:
    _raise_if_denied(actor, action, authorize_role(actor, action))


def require(actor: Actor, action: Action, resource: object = None) -> None:
    """Same as authorize() but raises the matching ForbiddenError."""
    _raise_if_denied(actor, action, authorize(actor, action, resource))


def _raise_if_denied(actor: Actor, action: Action, decision: Decision) -> None:
    if decision.allowed:
        return

    logger.warning("Denied %s for user %s (%s): %s", action.value, actor.id, decision.kind.value, decision.reason)
    if decision.kind is DenialKind.ROLE:
        raise RoleForbiddenError(decision.reason)
    raise OwnershipForbiddenError(decision.reason)
