from __future__ import annotations

import logging

from marketplace.domain.access.policy import Action, require, require_role
from marketplace.domain.core.schema import Actor, ProjectStatus, Role
from marketplace.domain.core.validate import validate_project_fields
from marketplace.infra.repositories.project_repository import ProjectRecord, ProjectRepository
from marketplace.services.errors import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)


class ProjectService:
    """Project lifecycle: Unassigned -> Assigned -> Completed."""

    def __init__(self, repository: ProjectRepository) -> None:
        self._repository = repository

    def list_projects(self, actor: Actor) -> list[ProjectRecord]:
        # Buyers see their own board; everyone else browses open projects.
        if actor.role is Role.BUYER:
            return self._repository.list_projects(buyer_id=actor.id)
        return self._repository.list_projects(status=ProjectStatus.UNASSIGNED)

    def get_project(self, actor: Actor, project_id: str) -> ProjectRecord:
        return self._repository.get(project_id)

    def get_my_project(self, actor: Actor) -> ProjectRecord:
        require(actor, Action.VIEW_MY_PROJECT)
        project = self._repository.find_assigned_to(actor.id)
        if project is None:
            raise NotFoundError("Project", actor.id, "No active assignment found")
        return project

    def create_project(self, actor: Actor, title: str | None, description: str | None) -> ProjectRecord:
        require(actor, Action.CREATE_PROJECT)
        fields = validate_project_fields(title, description)
        project = self._repository.create(buyer_id=actor.id, title=fields.title, description=fields.description)
        logger.info("Project %s created by buyer %s", project.id, actor.id)
        return project

    def edit_project(
        self,
        actor: Actor,
        project_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> ProjectRecord:
        require_role(actor, Action.EDIT_PROJECT)
        fields = validate_project_fields(title, description, partial=True)
        self._owned(actor, Action.EDIT_PROJECT, project_id)
        return self._repository.update(project_id, title=fields.title, description=fields.description)

    def delete_project(self, actor: Actor, project_id: str) -> None:
        require_role(actor, Action.DELETE_PROJECT)
        self._owned(actor, Action.DELETE_PROJECT, project_id)
        self._repository.delete(project_id)
        logger.info("Project %s deleted by buyer %s", project_id, actor.id)

    def assign_solver(self, actor: Actor, project_id: str, request_id: str) -> ProjectRecord:
        require_role(actor, Action.ASSIGN_SOLVER)
        self._owned(actor, Action.ASSIGN_SOLVER, project_id)
        try:
            project = self._repository.assign(project_id, request_id)
        except InvalidStateError:
            logger.warning("Assignment of project %s via request %s refused", project_id, request_id)
            raise
        logger.info("Project %s assigned to solver %s", project.id, project.solver_id)
        return project

    def complete_project(self, actor: Actor, project_id: str) -> ProjectRecord:
        require_role(actor, Action.COMPLETE_PROJECT)
        self._owned(actor, Action.COMPLETE_PROJECT, project_id)
        project = self._repository.complete(project_id)
        logger.info("Project %s completed", project.id)
        return project

    def _owned(self, actor: Actor, action: Action, project_id: str) -> ProjectRecord:
        project = self._repository.get(project_id)
        require(actor, action, project)
        return project
