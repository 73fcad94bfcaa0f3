"""
Project plan blueprint.

Endpoints:
    GET  /api/projects/<id>/plan  — the project's plan (404 if none)
    POST /api/projects/<id>/plan  — create the plan; 400 until a budget item is approved
"""

from flask import Blueprint

from app.middleware.auth_required import login_required
from app.middleware.jwt_auth import current_user
from app.services import plan_service
from app.utils.errors import api_ok
from app.utils.helpers import json_object

plan_bp = Blueprint("plan", __name__, url_prefix="/api")


@plan_bp.route("/projects/<int:project_id>/plan", methods=["GET"])
@login_required
def get_plan(project_id):
    return api_ok(plan_service.get_plan(project_id).to_dict())


@plan_bp.route("/projects/<int:project_id>/plan", methods=["POST"])
@login_required
def create_plan(project_id):
    data = json_object()
    plan = plan_service.create_plan(project_id, current_user(), data)
    return api_ok(plan.to_dict(), status=201)
