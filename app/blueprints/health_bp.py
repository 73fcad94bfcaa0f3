"""
Health check blueprint.

Endpoints:
    GET /api/health  — liveness plus a database round-trip
"""

import logging
import time

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from app.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/health")


@health_bp.route("", methods=["GET"])
def health():
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Health check: database failed: %s", exc)
        return jsonify({"success": False, "error": "Database unavailable"}), 503
    return jsonify({
        "success": True,
        "data": {"status": "ok", "database": {"status": "ok", "latency_ms": round(db_ms, 1)}},
    }), 200
