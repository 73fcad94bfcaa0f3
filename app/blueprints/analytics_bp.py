"""
Analytics blueprint.

Endpoints:
    GET /api/analytics/budget-summary   — budget totals (optional ?project_id=)
    GET /api/analytics/project-status   — project counts per status
"""

from flask import Blueprint, request

from app.middleware.auth_required import require_capability
from app.middleware.jwt_auth import current_user
from app.services import analytics_service
from app.services.permission import Capability
from app.utils.errors import api_ok

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.route("/budget-summary", methods=["GET"])
@require_capability(Capability.VIEW_ANALYTICS)
def budget_summary():
    project_id = request.args.get("project_id", type=int)
    return api_ok(analytics_service.budget_summary(current_user(), project_id=project_id))


@analytics_bp.route("/project-status", methods=["GET"])
@require_capability(Capability.VIEW_ANALYTICS)
def project_status():
    return api_ok(analytics_service.project_status_counts(current_user()))
