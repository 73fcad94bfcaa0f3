"""
Budget Ledger Service — derived cost fields and the approval state machine.

Derived fields
--------------
    variance           = actual_cost - estimated_cost
    forecast_remaining = estimated_cost * (1 + contingency_percentage / 100) - actual_cost

Both are recomputed in the same flush as any write that touches one of the
three inputs, always from the *merged* post-update values: a patch that
only carries ``actual_cost`` still reads the stored estimate and
contingency.

Approval lifecycle
------------------
    pending ──approve──▶ approved   (final)
    pending ──reject───▶ rejected

Repeating the decision an item already carries is a no-op (no write, no
audit row). Reversing a decision is rejected; the ledger does not model
un-approval.

Every mutation appends exactly one audit row in the same transaction.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app

from app.core.exceptions import ValidationError
from app.models import db
from app.models.budget import BudgetItem
from app.models.project import Project
from app.services import audit_service
from app.services.permission import Capability, current_engine
from app.utils.helpers import clean_text, commit_or_raise, get_or_404, parse_decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
DEFAULT_CONTINGENCY = Decimal("10")
# Largest value a Numeric(14, 2) cost column holds.
MAX_COST = Decimal("999999999999.99")

FISCAL_PERIOD_RE = re.compile(r"^(Q[1-4]-\d{4}|FY\d{4})$")

# Variance band (percent of estimate) for the on_track status.
BUDGET_STATUS_BAND = Decimal("10")

_REQUIRED_ON_CREATE = ("budget_item_id", "category", "estimated_cost", "fiscal_period")


# ═════════════════════════════════════════════════════════════════════════════
# Derived fields
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DerivedFields:
    variance: Decimal
    forecast_remaining: Decimal


def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_derived(estimated_cost, actual_cost, contingency_percentage) -> DerivedFields:
    """Compute variance and forecast remaining, rounded to cents."""
    estimated = _dec(estimated_cost)
    actual = _dec(actual_cost)
    contingency = _dec(contingency_percentage)

    variance = actual - estimated
    forecast = estimated * (1 + contingency / HUNDRED) - actual
    return DerivedFields(
        variance=variance.quantize(CENT, rounding=ROUND_HALF_UP),
        forecast_remaining=forecast.quantize(CENT, rounding=ROUND_HALF_UP),
    )


def budget_status(estimated_cost, actual_cost) -> str:
    """Classify spend against estimate: over_budget / under_budget / on_track."""
    estimated = _dec(estimated_cost)
    if estimated == 0:
        return "over_budget" if _dec(actual_cost) > 0 else "on_track"
    variance_pct = (_dec(actual_cost) - estimated) / estimated * HUNDRED
    if variance_pct > BUDGET_STATUS_BAND:
        return "over_budget"
    if variance_pct < -BUDGET_STATUS_BAND:
        return "under_budget"
    return "on_track"


def _apply_derived(item: BudgetItem) -> None:
    derived = compute_derived(item.estimated_cost, item.actual_cost, item.contingency_percentage)
    item.variance = derived.variance
    item.forecast_remaining = derived.forecast_remaining


# ═════════════════════════════════════════════════════════════════════════════
# Typed patch
# ═════════════════════════════════════════════════════════════════════════════

_UNSET = object()

_COST_FIELDS = frozenset({"estimated_cost", "actual_cost", "contingency_percentage"})


@dataclass
class BudgetItemPatch:
    """Updatable BudgetItem fields; ``_UNSET`` means "not in the request"."""

    budget_item_id: object = _UNSET
    category: object = _UNSET
    estimated_cost: object = _UNSET
    actual_cost: object = _UNSET
    contingency_percentage: object = _UNSET
    fiscal_period: object = _UNSET
    cost_center: object = _UNSET
    justification: object = _UNSET
    funding_source: object = _UNSET

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_payload(cls, payload: dict) -> "BudgetItemPatch":
        """Validate a raw JSON body into a patch.

        Unknown keys and read-only keys (approval_status, variance, ...)
        are rejected rather than ignored.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        allowed = set(cls.field_names())
        rejected = sorted(k for k in payload if k not in allowed)
        if rejected:
            raise ValidationError(
                f"Fields not updatable: {', '.join(rejected)}",
                details={"rejected": rejected},
            )

        patch = cls()
        for key, raw in payload.items():
            setattr(patch, key, _validate_field(key, raw))
        return patch

    def changed(self) -> dict:
        return {
            name: getattr(self, name)
            for name in self.field_names()
            if getattr(self, name) is not _UNSET
        }

    def touches_costs(self) -> bool:
        return any(name in _COST_FIELDS for name in self.changed())


def _validate_field(key, raw):
    if key in ("estimated_cost", "actual_cost"):
        return parse_decimal(raw, key, minimum=0, maximum=MAX_COST, places=2)
    if key == "contingency_percentage":
        return parse_decimal(raw, key, minimum=0, maximum=100, places=2)
    if key == "fiscal_period":
        value = clean_text(raw) if raw is not None else ""
        if not isinstance(value, str) or not FISCAL_PERIOD_RE.match(value):
            raise ValidationError("fiscal_period must look like Q1-2024 or FY2024")
        return value
    if key in ("budget_item_id", "category"):
        value = clean_text(raw)
        if not isinstance(value, str) or not value:
            raise ValidationError(f"{key} cannot be empty")
        return value
    # Optional free text
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"{key} must be a string")
    return clean_text(raw)


# ═════════════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════════════


def _get_project(project_id) -> Project:
    return get_or_404(Project, project_id, "Project")


def get_budget_item(item_id) -> BudgetItem:
    return get_or_404(BudgetItem, item_id, "Budget item")


def list_budget_items(project_id) -> list[BudgetItem]:
    """Budget items of a project, newest first."""
    _get_project(project_id)
    return (
        BudgetItem.query
        .filter(BudgetItem.project_id == project_id)
        .order_by(BudgetItem.created_at.desc(), BudgetItem.id.desc())
        .all()
    )


# ═════════════════════════════════════════════════════════════════════════════
# Mutations
# ═════════════════════════════════════════════════════════════════════════════


def create_budget_item(project_id, acting_user, payload: dict) -> BudgetItem:
    """Create a pending budget item with derived fields populated."""
    project = _get_project(project_id)
    current_engine().require_edit(acting_user, owner_id=project.owner_id)

    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    missing = [k for k in _REQUIRED_ON_CREATE if payload.get(k) in (None, "")]
    if missing:
        raise ValidationError(
            "Required fields missing", details={"missing": missing},
        )

    # Optional cost inputs sent as null fall back to their defaults.
    body = {
        k: v for k, v in payload.items()
        if not (k in ("actual_cost", "contingency_percentage") and v in (None, ""))
    }
    patch = BudgetItemPatch.from_payload(body)
    values = patch.changed()
    values.setdefault("actual_cost", Decimal("0"))
    if "contingency_percentage" not in values:
        values["contingency_percentage"] = Decimal(
            str(current_app.config.get("DEFAULT_CONTINGENCY_PERCENTAGE", DEFAULT_CONTINGENCY))
        )

    item = BudgetItem(project_id=project.id, approval_status="pending", **values)
    _apply_derived(item)
    db.session.add(item)
    db.session.flush()

    audit_service.record("budget_item", item.id, acting_user.id, "create", payload)
    commit_or_raise("budget item create")
    logger.info(
        "Budget item %s created on project %s by user %s",
        item.id, project.id, acting_user.id,
    )
    return item


def update_budget_item(item_id, acting_user, payload: dict) -> BudgetItem:
    """Apply a partial update and recompute derived fields from merged values."""
    item = get_budget_item(item_id)
    project = _get_project(item.project_id)
    current_engine().require_edit(acting_user, owner_id=project.owner_id)

    patch = BudgetItemPatch.from_payload(payload)
    for name, value in patch.changed().items():
        setattr(item, name, value)
    if patch.touches_costs():
        _apply_derived(item)
    db.session.flush()

    audit_service.record("budget_item", item.id, acting_user.id, "update", payload)
    commit_or_raise("budget item update")
    return item


def _decide(item_id, acting_user, decision: str) -> BudgetItem:
    current_engine().require(acting_user, Capability.APPROVE)
    item = get_budget_item(item_id)

    if item.approval_status == decision:
        logger.info(
            "Budget item %s already %s; repeat request by user %s ignored",
            item.id, decision, acting_user.id,
        )
        return item
    if item.approval_status != "pending":
        raise ValidationError(
            f"Budget item is already {item.approval_status}; it cannot be {decision}"
        )

    now = datetime.now(timezone.utc)
    item.approval_status = decision
    item.approved_by = acting_user.id
    item.approval_date = now
    item.last_review_date = now
    db.session.flush()

    audit_service.record(
        "budget_item", item.id, acting_user.id, "update", {"approval_status": decision},
    )
    commit_or_raise(f"budget item {decision}")
    logger.info("Budget item %s %s by user %s", item.id, decision, acting_user.id)
    return item


def approve(item_id, acting_user) -> BudgetItem:
    """Mark a budget item approved. Idempotent for already-approved items."""
    return _decide(item_id, acting_user, "approved")


def reject(item_id, acting_user) -> BudgetItem:
    """Mark a pending budget item rejected."""
    return _decide(item_id, acting_user, "rejected")


def delete_budget_item(item_id, acting_user) -> None:
    """Delete a budget item. Requires ``delete``; ownership does not help.

    An existing ProjectPlan is left untouched even if this was the
    project's last approved item: the plan gate is checked only when a
    plan is created.
    """
    current_engine().require(acting_user, Capability.DELETE)
    item = get_budget_item(item_id)
    entity_id = item.id

    db.session.delete(item)
    db.session.flush()

    audit_service.record("budget_item", entity_id, acting_user.id, "delete", {})
    commit_or_raise("budget item delete")
    logger.info("Budget item %s deleted by user %s", entity_id, acting_user.id)
