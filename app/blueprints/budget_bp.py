"""
Budget blueprint.

Endpoints:
    GET    /api/projects/<id>/budget-items   — list, newest first
    POST   /api/projects/<id>/budget-items   — create (pending)
    PATCH  /api/budget-items/<id>            — partial update, derived fields recomputed
    DELETE /api/budget-items/<id>            — delete (delete capability)
    POST   /api/budget-items/<id>/approve    — approve, or reject via {"approval_status": "rejected"}
    POST   /api/budget-items/<id>/reject     — reject
"""

from flask import Blueprint

from app.core.exceptions import ValidationError
from app.middleware.auth_required import login_required
from app.middleware.jwt_auth import current_user
from app.services import budget_ledger
from app.utils.errors import api_ok
from app.utils.helpers import json_object

budget_bp = Blueprint("budget", __name__, url_prefix="/api")


@budget_bp.route("/projects/<int:project_id>/budget-items", methods=["GET"])
@login_required
def list_budget_items(project_id):
    items = budget_ledger.list_budget_items(project_id)
    return api_ok([i.to_dict() for i in items])


@budget_bp.route("/projects/<int:project_id>/budget-items", methods=["POST"])
@login_required
def create_budget_item(project_id):
    """
    Body: {
        budget_item_id, category, estimated_cost, fiscal_period,
        actual_cost?, cost_center?, contingency_percentage?,
        justification?, funding_source?
    }
    """
    data = json_object()
    item = budget_ledger.create_budget_item(project_id, current_user(), data)
    return api_ok(item.to_dict(), status=201)


@budget_bp.route("/budget-items/<int:item_id>", methods=["PATCH"])
@login_required
def update_budget_item(item_id):
    data = json_object()
    item = budget_ledger.update_budget_item(item_id, current_user(), data)
    return api_ok(item.to_dict())


@budget_bp.route("/budget-items/<int:item_id>", methods=["DELETE"])
@login_required
def delete_budget_item(item_id):
    budget_ledger.delete_budget_item(item_id, current_user())
    return api_ok(message="Budget item deleted successfully")


@budget_bp.route("/budget-items/<int:item_id>/approve", methods=["POST"])
@login_required
def approve_budget_item(item_id):
    data = json_object()
    decision = data.get("approval_status", "approved")
    if decision == "approved":
        item = budget_ledger.approve(item_id, current_user())
    elif decision == "rejected":
        item = budget_ledger.reject(item_id, current_user())
    else:
        raise ValidationError('Invalid approval status. Must be "approved" or "rejected"')
    return api_ok(item.to_dict())


@budget_bp.route("/budget-items/<int:item_id>/reject", methods=["POST"])
@login_required
def reject_budget_item(item_id):
    item = budget_ledger.reject(item_id, current_user())
    return api_ok(item.to_dict())
