"""
Rate limiting configuration.

Applies per-route-group limits using Flask-Limiter. The Limiter instance is
created in app/__init__.py with no default limits; this module applies the
granular limits:

    - Login / register:  LOGIN_RATE_LIMIT (default 10/minute per IP)
    - Write endpoints:   60/minute
    - Health check:      exempt

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_LIMIT = "10/minute"
WRITE_LIMIT = "60/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to registered blueprints.

    Rate limiting is disabled when RATELIMIT_ENABLED is false (tests).
    """
    if not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled (RATELIMIT_ENABLED=False)")
        return

    login_limit = app.config.get("LOGIN_RATE_LIMIT", DEFAULT_LOGIN_LIMIT)
    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(login_limit, methods=["POST"])(bp)

    for bp_name in ("projects", "budget", "plan"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, methods=["POST", "PATCH", "DELETE"])(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — auth: %s, write: %s", login_limit, WRITE_LIMIT)
