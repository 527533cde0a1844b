from __future__ import annotations

import logging

from marketplace.domain.access.policy import Action, require, require_role
from marketplace.domain.core.schema import Actor
from marketplace.infra.repositories.project_repository import ProjectRepository, SolverRequestRecord

logger = logging.getLogger(__name__)


class SolverRequestService:
    """
    Ledger of solvers asking to work on a project. One row per
    (project, solver); rows only change through ProjectService.assign_solver.
    """

    def __init__(self, repository: ProjectRepository) -> None:
        self._repository = repository

    def request_to_work(self, actor: Actor, project_id: str) -> SolverRequestRecord:
        require(actor, Action.REQUEST_TO_WORK)
        request = self._repository.add_request(project_id, actor.id)
        logger.info("Solver %s requested project %s", actor.id, project_id)
        return request

    def list_requests(self, actor: Actor, project_id: str) -> list[SolverRequestRecord]:
        require_role(actor, Action.LIST_REQUESTS)
        project = self._repository.get(project_id)
        require(actor, Action.LIST_REQUESTS, project)
        return self._repository.list_requests(project_id)
