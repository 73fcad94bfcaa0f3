"""
Route guards — authentication and capability decorators.

Usage:
    @bp.route("/projects", methods=["GET"])
    @login_required
    def list_projects():
        ...

    @bp.route("/audit-logs", methods=["GET"])
    @require_capability("view_audit_logs")
    def list_audit_logs():
        ...

Resource-scoped checks (owner override on edit) need the resource and
therefore live in the service layer; these decorators cover the checks
that depend on the caller alone.
"""

import functools
import logging

from app.core.exceptions import Unauthorized
from app.middleware.jwt_auth import current_user
from app.services.permission import current_engine

logger = logging.getLogger(__name__)


def login_required(f):
    """Decorator: reject the request with 401 unless a user is authenticated."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            raise Unauthorized("Unauthorized")
        return f(*args, **kwargs)
    return decorated


def require_capability(capability: str):
    """
    Decorator: require the authenticated user to hold *capability*.

    Args:
        capability: Capability name, e.g. "view_audit_logs"
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            current_engine().require(current_user(), capability)
            return f(*args, **kwargs)
        return decorated
    return decorator
