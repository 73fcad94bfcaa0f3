"""
Audit trail blueprint.

Endpoints:
    GET /api/audit-logs  — list / filter audit logs (view_audit_logs)

Query params:
    entity_type  — project | budget_item | project_plan
    entity_id    — entity PK
    user_id      — acting user
    date_from    — inclusive, YYYY-MM-DD
    date_to      — inclusive, YYYY-MM-DD
    limit        — page size (default 100, max 500)
    offset       — rows to skip (default 0)
"""

from flask import Blueprint, request

from app.middleware.auth_required import require_capability
from app.middleware.jwt_auth import current_user
from app.services.audit_service import AuditFilters, list_audit_logs
from app.services.permission import Capability
from app.utils.errors import api_ok

audit_bp = Blueprint("audit", __name__, url_prefix="/api")


@audit_bp.route("/audit-logs", methods=["GET"])
@require_capability(Capability.VIEW_AUDIT_LOGS)
def get_audit_logs():
    filters = AuditFilters.from_args(request.args)
    logs = list_audit_logs(current_user(), filters)
    return api_ok([log.to_dict() for log in logs])
