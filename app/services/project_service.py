"""Project CRUD service with capability and ownership checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

from app.core.exceptions import ValidationError
from app.models import db
from app.models.budget import BudgetItem
from app.models.project import PROJECT_STATUSES, Project, ProjectPlan, WorkflowTransition
from app.services import audit_service
from app.services.permission import Capability, current_engine
from app.utils.helpers import clean_text, commit_or_raise, get_or_404

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class ProjectPatch:
    """Updatable Project fields."""

    name: object = _UNSET
    description: object = _UNSET
    status: object = _UNSET

    @classmethod
    def from_payload(cls, payload: dict) -> "ProjectPatch":
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        allowed = {f.name for f in fields(cls)}
        rejected = sorted(k for k in payload if k not in allowed)
        if rejected:
            raise ValidationError(f"Fields not updatable: {', '.join(rejected)}")

        patch = cls()
        if "name" in payload:
            name = clean_text(payload["name"])
            if not isinstance(name, str) or not name:
                raise ValidationError("name cannot be empty")
            patch.name = name
        if "description" in payload:
            description = payload["description"]
            if description is not None and not isinstance(description, str):
                raise ValidationError("description must be a string")
            patch.description = clean_text(description or "")
        if "status" in payload:
            patch.status = _validate_status(payload["status"])
        return patch

    def changed(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not _UNSET
        }


def _validate_status(value) -> str:
    if value not in PROJECT_STATUSES:
        raise ValidationError(f"status must be one of {list(PROJECT_STATUSES)}")
    return value


def list_projects() -> list[Project]:
    return Project.query.order_by(Project.created_at.desc(), Project.id.desc()).all()


def get_project(project_id) -> Project:
    return get_or_404(Project, project_id, "Project")


def create_project(acting_user, payload: dict) -> Project:
    """Create a project owned by the acting user, in ``planning`` status."""
    current_engine().require(acting_user, Capability.CREATE_PROJECT)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    name = clean_text(payload.get("name") or "")
    if not name:
        raise ValidationError("Project name is required")
    description = payload.get("description") or ""
    if not isinstance(description, str):
        raise ValidationError("description must be a string")

    project = Project(
        name=name,
        description=clean_text(description),
        status="planning",
        owner_id=acting_user.id,
    )
    db.session.add(project)
    db.session.flush()

    audit_service.record(
        "project", project.id, acting_user.id, "create",
        {"name": project.name, "description": project.description, "status": project.status},
    )
    commit_or_raise("project create")
    logger.info("Project %s created by user %s", project.id, acting_user.id)
    return project


def update_project(project_id, acting_user, payload: dict) -> Project:
    """Partial update; owners may edit regardless of rank."""
    project = get_project(project_id)
    current_engine().require_edit(acting_user, owner_id=project.owner_id)

    patch = ProjectPatch.from_payload(payload)
    for name, value in patch.changed().items():
        setattr(project, name, value)
    db.session.flush()

    audit_service.record("project", project.id, acting_user.id, "update", payload)
    commit_or_raise("project update")
    return project


def delete_project(project_id, acting_user) -> None:
    """Delete a project after removing every row it owns.

    Budget items, the plan and the lifecycle history go first, then the
    project row, then the audit entry; all in one transaction. Earlier
    audit rows about the project and its children are kept.
    """
    current_engine().require(acting_user, Capability.DELETE)
    project = get_project(project_id)
    entity_id = project.id

    BudgetItem.query.filter_by(project_id=entity_id).delete(synchronize_session=False)
    ProjectPlan.query.filter_by(project_id=entity_id).delete(synchronize_session=False)
    WorkflowTransition.query.filter_by(project_id=entity_id).delete(synchronize_session=False)
    db.session.delete(project)
    db.session.flush()

    audit_service.record("project", entity_id, acting_user.id, "delete", {})
    commit_or_raise("project delete")
    logger.info("Project %s deleted by user %s", entity_id, acting_user.id)


def transition_project(project_id, acting_user, to_status) -> WorkflowTransition:
    """Move a project to another lifecycle status and record the hop."""
    project = get_project(project_id)
    current_engine().require_edit(acting_user, owner_id=project.owner_id)

    if not to_status:
        raise ValidationError("Target workflow is required")
    to_status = _validate_status(to_status)
    from_status = project.status

    project.status = to_status
    transition = WorkflowTransition(
        project_id=project.id,
        from_status=from_status,
        to_status=to_status,
        transitioned_by=acting_user.id,
        status="completed",
    )
    db.session.add(transition)
    db.session.flush()

    audit_service.record(
        "project", project.id, acting_user.id, "update",
        {"status": {"old": from_status, "new": to_status}},
    )
    commit_or_raise("project transition")
    logger.info(
        "Project %s transitioned %s -> %s by user %s",
        project.id, from_status, to_status, acting_user.id,
    )
    return transition


def list_transitions(project_id) -> list[WorkflowTransition]:
    get_project(project_id)
    return (
        WorkflowTransition.query
        .filter_by(project_id=project_id)
        .order_by(WorkflowTransition.transitioned_at.desc(), WorkflowTransition.id.desc())
        .all()
    )
