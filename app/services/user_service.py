"""
User Service — registration, login, lookup.
"""

import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from flask import current_app

from app.core.exceptions import Unauthorized, ValidationError
from app.models import db
from app.models.auth import User
from app.services.permission import ROLE_NAMES, Capability, Role, current_engine
from app.utils.crypto import hash_password, verify_password
from app.utils.helpers import clean_text, commit_or_raise

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Roles anyone may pick when registering without an admin session.
SELF_SERVICE_ROLES = {Role.STAKEHOLDER, Role.TEAM_MEMBER}


def _normalize_email(email: str) -> str:
    try:
        valid = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}")
    return valid.normalized.lower()


def create_user(email: str, password: str, name: str, role: str) -> User:
    """Insert a user without any authorization check (CLI / fixtures)."""
    parsed_role = Role.parse(role)
    if parsed_role is None:
        raise ValidationError(f"Invalid role. Must be one of {list(ROLE_NAMES)}")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    email = _normalize_email(email)
    if User.query.filter_by(email=email).first():
        raise ValidationError("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12)),
        name=clean_text(name),
        role=parsed_role.label,
    )
    db.session.add(user)
    commit_or_raise("user create")
    logger.info("User %s registered with role %s", user.id, user.role)
    return user


def register_user(payload: dict, acting_user=None) -> User:
    """Self-service or admin registration.

    Elevated roles (project_manager, admin) require an acting user with
    ``manage_users``.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    email = (payload.get("email") or "").strip()
    password = payload.get("password") or ""
    name = (payload.get("name") or "").strip()
    role = payload.get("role") or ""
    if not email or not password or not name or not role:
        raise ValidationError("All fields are required")

    parsed_role = Role.parse(role)
    if parsed_role is None:
        raise ValidationError("Invalid role")
    if parsed_role not in SELF_SERVICE_ROLES:
        current_engine().require(acting_user, Capability.MANAGE_USERS)

    return create_user(email, password, name, parsed_role.label)


def get_user_by_id(user_id) -> User | None:
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


def authenticate(email: str, password: str) -> User:
    """Return the user for valid credentials; raise Unauthorized otherwise."""
    if not email or not password:
        raise ValidationError("Email and password are required")
    try:
        email = _normalize_email(email)
    except ValidationError:
        raise Unauthorized("Invalid email or password")

    user = User.query.filter_by(email=email).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid email or password")

    user.last_login_at = datetime.now(timezone.utc)
    commit_or_raise("login timestamp")
    return user
