"""ProjectPlan service — create and read the single plan of a project."""

from __future__ import annotations

import logging

from app.core.exceptions import GateNotSatisfied, NotFoundError, ValidationError
from app.models import db
from app.models.project import PLAN_TEXT_FIELDS, Project, ProjectPlan
from app.services import audit_service
from app.services.permission import current_engine
from app.services.workflow_gate import can_create_plan
from app.utils.helpers import commit_or_raise, get_or_404

logger = logging.getLogger(__name__)


def get_plan(project_id) -> ProjectPlan:
    plan = ProjectPlan.query.filter_by(project_id=project_id).first()
    if plan is None:
        raise NotFoundError(resource="Plan", resource_id=project_id)
    return plan


def create_plan(project_id, acting_user, payload: dict) -> ProjectPlan:
    """Create the project's plan once at least one budget item is approved.

    Order of checks: project exists, caller may edit it, gate is open,
    no plan exists yet. Nothing is written unless all four pass.
    """
    project = get_or_404(Project, project_id, "Project")
    current_engine().require_edit(acting_user, owner_id=project.owner_id)

    if not can_create_plan(project.id):
        logger.info("Plan creation blocked for project %s: no approved budget item", project.id)
        raise GateNotSatisfied()

    if ProjectPlan.query.filter_by(project_id=project.id).first() is not None:
        raise ValidationError("Project plan already exists")

    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    values = {}
    for field in PLAN_TEXT_FIELDS:
        value = payload.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
        values[field] = value

    plan = ProjectPlan(project_id=project.id, created_by=acting_user.id, **values)
    db.session.add(plan)
    db.session.flush()

    audit_service.record("project_plan", plan.id, acting_user.id, "create", payload)
    commit_or_raise("project plan create")
    logger.info("Plan %s created for project %s by user %s", plan.id, project.id, acting_user.id)
    return plan
