"""
Audit Trail Service — append and query the immutable mutation log.

``record`` writes into the caller's session so an entity mutation and its
audit row share one commit. ``list_audit_logs`` is the read side used by
``GET /api/audit-logs``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import PersistenceError, ValidationError
from app.models.audit import AUDIT_ENTITY_TYPES, AuditLog, write_audit
from app.services.permission import Capability, current_engine
from app.utils.helpers import parse_date

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def record(entity_type: str, entity_id, user_id, action: str, changes: dict | None) -> AuditLog:
    """Append one audit entry to the current unit of work.

    A failed append is logged as a warning and re-raised as
    PersistenceError; the caller's transaction then rolls back, so the
    mutation is never committed without its audit row.
    """
    try:
        return write_audit(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            user_id=user_id,
            changes=changes,
        )
    except (SQLAlchemyError, ValueError) as exc:
        logger.warning(
            "Audit append failed for %s/%s action=%s user=%s; mutation will be rolled back: %s",
            entity_type, entity_id, action, user_id, exc,
        )
        raise PersistenceError("Failed to record audit trail") from exc


@dataclass
class AuditFilters:
    entity_type: str | None = None
    entity_id: str | None = None
    user_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @classmethod
    def from_args(cls, args) -> "AuditFilters":
        """Build filters from a request-args mapping (werkzeug MultiDict)."""
        entity_type = (args.get("entity_type") or "").strip() or None
        if entity_type and entity_type not in AUDIT_ENTITY_TYPES:
            raise ValidationError(
                f"entity_type must be one of {sorted(AUDIT_ENTITY_TYPES)}"
            )

        user_id = args.get("user_id")
        if user_id not in (None, ""):
            try:
                user_id = int(user_id)
            except (TypeError, ValueError):
                raise ValidationError("user_id must be an integer")
        else:
            user_id = None

        date_from = _parse_bound(args.get("date_from"), "date_from")
        date_to = _parse_bound(args.get("date_to"), "date_to")
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")

        try:
            limit = int(args.get("limit", DEFAULT_LIMIT))
            offset = int(args.get("offset", 0))
        except (TypeError, ValueError):
            raise ValidationError("limit and offset must be integers")

        return cls(
            entity_type=entity_type,
            entity_id=(args.get("entity_id") or "").strip() or None,
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
            limit=min(MAX_LIMIT, max(1, limit)),
            offset=max(0, offset),
        )


def _parse_bound(raw, name):
    if not raw:
        return None
    parsed = parse_date(raw)
    if parsed is None:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
    return parsed


def list_audit_logs(acting_user, filters: AuditFilters) -> list[AuditLog]:
    """Return audit entries newest first; requires ``view_audit_logs``."""
    current_engine().require(acting_user, Capability.VIEW_AUDIT_LOGS)

    q = AuditLog.query
    if filters.entity_type:
        q = q.filter(AuditLog.entity_type == filters.entity_type)
    if filters.entity_id:
        q = q.filter(AuditLog.entity_id == str(filters.entity_id))
    if filters.user_id is not None:
        q = q.filter(AuditLog.user_id == filters.user_id)
    if filters.date_from:
        start = datetime.combine(filters.date_from, time.min, tzinfo=timezone.utc)
        q = q.filter(AuditLog.timestamp >= start)
    if filters.date_to:
        end = datetime.combine(filters.date_to, time.max, tzinfo=timezone.utc)
        q = q.filter(AuditLog.timestamp <= end)

    return (
        q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .offset(filters.offset)
        .limit(filters.limit)
        .all()
    )
