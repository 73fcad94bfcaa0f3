"""Standardised API responses.

Every response body is one of:

    {"success": true,  "data": ...}
    {"success": false, "error": "message"}

Usage
-----
    from app.utils.errors import api_ok, api_error

    return api_ok(item.to_dict(), status=201)
    return api_error("Budget item not found", 404)

Domain exceptions from ``app.core.exceptions`` are translated by the
handlers that ``register_error_handlers`` installs on the app, so views
normally just raise.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from app.core.exceptions import (
    AppError,
    NotFoundError,
    PersistenceError,
    Unauthorized,
    ValidationError,
)

logger = logging.getLogger(__name__)


def api_ok(data=None, *, status: int = 200, message: str | None = None):
    """Return a success envelope. ``message`` replaces ``data`` when given."""
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    else:
        body["data"] = data
    return jsonify(body), status


def api_error(message: str, status: int = 400):
    """Return a failure envelope with the given HTTP status."""
    return jsonify({"success": False, "error": message}), status


# ── Handlers ──────────────────────────────────────────────────────────


def _handle_unauthorized(error: Unauthorized):
    logger.info(
        "401 on %s %s: %s (capability=%s)",
        request.method, request.path, error, error.capability,
    )
    return api_error(str(error), 401)


def _handle_not_found(error: NotFoundError):
    logger.debug("404 on %s: %s id=%s", request.path, error.resource, error.resource_id)
    return api_error(str(error), 404)


def _handle_validation(error: ValidationError):
    if error.details:
        logger.debug("Validation details on %s: %s", request.path, error.details)
    return api_error(str(error), 400)


def _handle_persistence(error: PersistenceError):
    from app.models import db

    db.session.rollback()
    logger.error(
        "Persistence failure on %s %s: %r",
        request.method, request.path, error.__cause__ or error,
    )
    return api_error(error.public_message, 500)


def _handle_app_error(error: AppError):
    return api_error(str(error), error.status_code)


def _handle_sqlalchemy(error: SQLAlchemyError):
    from app.models import db

    db.session.rollback()
    logger.exception("Unhandled database error on %s %s", request.method, request.path)
    return api_error("Internal server error", 500)


def _handle_http(error: HTTPException):
    messages = {
        401: "Unauthorized",
        404: "Not found",
        405: "Method not allowed",
        413: "Request body too large",
        415: "Content-Type must be application/json",
        429: "Too many requests",
    }
    return api_error(messages.get(error.code, error.description or error.name), error.code or 500)


def _handle_unexpected(error: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.path)
    return api_error("Internal server error", 500)


def register_error_handlers(app):
    """Map the exception hierarchy to the JSON envelope for the whole app."""
    app.register_error_handler(Unauthorized, _handle_unauthorized)
    app.register_error_handler(NotFoundError, _handle_not_found)
    app.register_error_handler(ValidationError, _handle_validation)
    app.register_error_handler(PersistenceError, _handle_persistence)
    app.register_error_handler(AppError, _handle_app_error)
    app.register_error_handler(SQLAlchemyError, _handle_sqlalchemy)
    app.register_error_handler(HTTPException, _handle_http)
    app.register_error_handler(Exception, _handle_unexpected)
