"""
JWT Auth Middleware — resolves the Authorization header to ``g.current_user``.

    Authorization: Bearer <token>  →  g.current_user = User row

A missing, malformed, expired or unknown-user token leaves
``g.current_user = None``; views decide whether that is a 401 via
``app.middleware.auth_required``.
"""

import logging

import jwt as pyjwt
from flask import g, request

from app.services.jwt_service import decode_access_token
from app.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/auth/login",
    "/api/health",
)


def current_user():
    """The authenticated User of this request, or None."""
    return getattr(g, "current_user", None)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.current_user_id = None

        path = request.path
        if not path.startswith("/api/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:].strip()
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired token on %s", path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Invalid token on %s: %s", path, exc)
            return

        user = get_user_by_id(payload.get("sub"))
        if user is None:
            logger.warning("Token for unknown user %s on %s", payload.get("sub"), path)
            return
        g.current_user = user
        g.current_user_id = user.id
