"""
Auth blueprint.

Endpoints:
    POST /api/auth/register  — create a user (elevated roles need manage_users)
    POST /api/auth/login     — exchange email + password for a bearer token
    GET  /api/auth/me        — current user and permission summary
"""

from flask import Blueprint

from app.middleware.auth_required import login_required
from app.middleware.jwt_auth import current_user
from app.services import user_service
from app.services.jwt_service import token_response
from app.services.permission import current_engine
from app.utils.errors import api_ok
from app.utils.helpers import json_object

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/register", methods=["POST"])
def register():
    """Body: { email, password, name, role }"""
    data = json_object()
    user = user_service.register_user(data, acting_user=current_user())
    return api_ok(user.to_dict(), status=201)


@auth_bp.route("/login", methods=["POST"])
def login():
    """Body: { email, password }"""
    data = json_object()
    user = user_service.authenticate(data.get("email"), data.get("password"))
    body = token_response(user.id, user.role)
    body["user"] = user.to_dict()
    return api_ok(body)


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    user = current_user()
    data = user.to_dict()
    data["permission_level"] = current_engine().permission_level(user)
    return api_ok(data)
