"""
Project blueprint.

Endpoints:
    GET    /api/projects                                — list projects
    POST   /api/projects                                — create (create_project)
    GET    /api/projects/<id>                           — project + owner name
    PATCH  /api/projects/<id>                           — partial update (edit, owner override)
    DELETE /api/projects/<id>                           — cascade delete (delete)
    POST   /api/projects/<id>/workflow/transition       — change lifecycle status
    GET    /api/projects/<id>/workflow/transitions      — lifecycle history
    GET    /api/projects/<id>/workflow/gate             — can a plan be created yet?
"""

from flask import Blueprint

from app.middleware.auth_required import login_required
from app.middleware.jwt_auth import current_user
from app.services import project_service
from app.services.workflow_gate import can_create_plan
from app.utils.errors import api_ok
from app.utils.helpers import json_object

project_bp = Blueprint("projects", __name__, url_prefix="/api")


@project_bp.route("/projects", methods=["GET"])
@login_required
def list_projects():
    return api_ok([p.to_dict() for p in project_service.list_projects()])


@project_bp.route("/projects", methods=["POST"])
@login_required
def create_project():
    """Body: { name, description? }"""
    data = json_object()
    project = project_service.create_project(current_user(), data)
    return api_ok(project.to_dict(), status=201)


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
@login_required
def get_project(project_id):
    return api_ok(project_service.get_project(project_id).to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["PATCH"])
@login_required
def update_project(project_id):
    """Body: any of { name, description, status }"""
    data = json_object()
    project = project_service.update_project(project_id, current_user(), data)
    return api_ok(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@login_required
def delete_project(project_id):
    project_service.delete_project(project_id, current_user())
    return api_ok(message="Project deleted successfully")


@project_bp.route("/projects/<int:project_id>/workflow/transition", methods=["POST"])
@login_required
def transition_project(project_id):
    """Body: { to_workflow }"""
    data = json_object()
    transition = project_service.transition_project(
        project_id, current_user(), data.get("to_workflow"),
    )
    return api_ok(transition.to_dict())


@project_bp.route("/projects/<int:project_id>/workflow/transitions", methods=["GET"])
@login_required
def list_transitions(project_id):
    return api_ok([t.to_dict() for t in project_service.list_transitions(project_id)])


@project_bp.route("/projects/<int:project_id>/workflow/gate", methods=["GET"])
@login_required
def plan_gate(project_id):
    project = project_service.get_project(project_id)
    return api_ok({"project_id": project.id, "can_create_plan": can_create_plan(project.id)})
