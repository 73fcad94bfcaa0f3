"""
Role-Based Access Control (RBAC) — PermissionEngine

Roles form a strict order (stakeholder < team_member < project_manager < admin).
A capability is granted when the user's rank is at least the capability's
minimum rank. The threshold table is data handed to the engine, so changing
who may approve or delete never touches a conditional.

Usage:
    from app.services.permission import current_engine, Capability

    engine = current_engine()
    if engine.has_capability(user, Capability.APPROVE):
        ...

    # Resource-scoped edit: owners pass regardless of rank
    engine.can_edit_resource(user, owner_id=project.owner_id)

    # Raises Unauthorized
    engine.require(user, Capability.DELETE)
"""

import enum
import logging
from collections.abc import Mapping

from flask import current_app

from app.core.exceptions import Unauthorized

logger = logging.getLogger(__name__)


class Role(enum.IntEnum):
    """Ordered role hierarchy; the int value is the rank."""

    STAKEHOLDER = 1
    TEAM_MEMBER = 2
    PROJECT_MANAGER = 3
    ADMIN = 4

    @classmethod
    def parse(cls, name):
        """Return the Role for a stored role string, or None if unknown."""
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            return None

    @property
    def label(self) -> str:
        return self.name.lower()


ROLE_NAMES = tuple(r.label for r in Role)


class Capability:
    APPROVE = "approve"
    DELETE = "delete"
    CREATE_PROJECT = "create_project"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    EXPORT = "export"
    EDIT = "edit"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"


DEFAULT_CAPABILITY_RANKS: dict[str, Role] = {
    Capability.APPROVE: Role.PROJECT_MANAGER,
    Capability.DELETE: Role.PROJECT_MANAGER,
    Capability.CREATE_PROJECT: Role.PROJECT_MANAGER,
    Capability.VIEW_AUDIT_LOGS: Role.PROJECT_MANAGER,
    Capability.EXPORT: Role.PROJECT_MANAGER,
    Capability.EDIT: Role.TEAM_MEMBER,
    Capability.MANAGE_USERS: Role.ADMIN,
    Capability.VIEW_ANALYTICS: Role.STAKEHOLDER,
}

# Summary labels in the order /auth/me reports them.
_LEVEL_LABELS = (
    (Capability.MANAGE_USERS, "Manage Users"),
    (Capability.APPROVE, "Approve"),
    (Capability.DELETE, "Delete"),
    (Capability.EDIT, "Edit"),
    (Capability.VIEW_ANALYTICS, "View"),
)


class PermissionEngine:
    """Pure capability checks over (role, capability, optional owner id)."""

    def __init__(self, capability_ranks: Mapping[str, Role | str | int]):
        ranks = {}
        for capability, rank in capability_ranks.items():
            role = Role(rank) if isinstance(rank, int) else Role.parse(rank)
            if role is None:
                raise ValueError(f"Unknown role {rank!r} for capability {capability!r}")
            ranks[capability] = role
        self._ranks = ranks

    @property
    def capabilities(self) -> dict[str, Role]:
        return dict(self._ranks)

    @staticmethod
    def rank_of(user) -> int:
        """Rank of *user*; 0 for anonymous users or unknown roles."""
        if user is None:
            return 0
        role = Role.parse(getattr(user, "role", None))
        return int(role) if role is not None else 0

    def has_role(self, user, required: Role | str) -> bool:
        required_role = Role.parse(required)
        if required_role is None:
            return False
        return self.rank_of(user) >= required_role

    def has_capability(self, user, capability: str) -> bool:
        minimum = self._ranks.get(capability)
        if minimum is None:
            logger.warning("Unknown capability checked: %s", capability)
            return False
        if user is None:
            return False
        return self.rank_of(user) >= minimum

    def is_owner(self, user, owner_id) -> bool:
        if user is None or owner_id is None:
            return False
        return str(user.id) == str(owner_id)

    def can_edit_resource(self, user, owner_id=None) -> bool:
        """Owners may edit their own resource regardless of rank."""
        if user is None:
            return False
        if self.is_owner(user, owner_id):
            return True
        return self.has_capability(user, Capability.EDIT)

    def can_delete_resource(self, user) -> bool:
        # Ownership never grants delete.
        return self.has_capability(user, Capability.DELETE)

    def permission_level(self, user) -> str:
        if user is None:
            return "None"
        labels = [label for cap, label in _LEVEL_LABELS if self.has_capability(user, cap)]
        return ", ".join(labels) or "View Only"

    def require(self, user, capability: str) -> None:
        """Raise Unauthorized unless *user* holds *capability*."""
        if user is None:
            raise Unauthorized("Unauthorized", capability=capability)
        if not self.has_capability(user, capability):
            logger.warning(
                "User %s (%s) denied: missing capability '%s'",
                user.id, user.role, capability,
            )
            raise Unauthorized("Insufficient permissions", capability=capability)

    def require_edit(self, user, owner_id=None) -> None:
        """Raise Unauthorized unless *user* may edit a resource owned by *owner_id*."""
        if user is None:
            raise Unauthorized("Unauthorized", capability=Capability.EDIT)
        if not self.can_edit_resource(user, owner_id):
            logger.warning(
                "User %s (%s) denied: cannot edit resource owned by %s",
                user.id, user.role, owner_id,
            )
            raise Unauthorized("Insufficient permissions", capability=Capability.EDIT)


_default_engine = PermissionEngine(DEFAULT_CAPABILITY_RANKS)


def init_permissions(app) -> PermissionEngine:
    """Build the app's engine from the defaults plus CAPABILITY_MIN_RANKS overrides."""
    ranks = dict(DEFAULT_CAPABILITY_RANKS)
    ranks.update(app.config.get("CAPABILITY_MIN_RANKS") or {})
    engine = PermissionEngine(ranks)
    app.extensions["permission_engine"] = engine
    return engine


def current_engine() -> PermissionEngine:
    """Engine of the active app, or the default table outside an app context."""
    try:
        return current_app.extensions.get("permission_engine", _default_engine)
    except RuntimeError:
        return _default_engine
