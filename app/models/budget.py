"""
Budget domain model.

Models:
    - BudgetItem: one cost line of a project, with derived variance and
      forecast columns and an approval status.

``variance`` and ``forecast_remaining`` are never written by callers;
``app.services.budget_ledger`` recomputes them on every write that touches
an input column.
"""

from datetime import datetime, timezone

from app.models import db

APPROVAL_STATUSES = ("pending", "approved", "rejected")


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


class BudgetItem(db.Model):
    __tablename__ = "budget_items"
    __table_args__ = (
        db.Index("idx_budget_project_status", "project_id", "approval_status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True,
    )
    budget_item_id = db.Column(
        db.String(50), nullable=False,
        comment="Caller-assigned code, e.g. BUD-001",
    )
    category = db.Column(db.String(100), nullable=False)

    estimated_cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    actual_cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    contingency_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=10)
    variance = db.Column(
        db.Numeric(16, 2), nullable=False, default=0,
        comment="actual_cost - estimated_cost",
    )
    forecast_remaining = db.Column(
        db.Numeric(16, 2), nullable=False, default=0,
        comment="estimated_cost * (1 + contingency/100) - actual_cost",
    )

    fiscal_period = db.Column(db.String(20), nullable=False, comment="Q1-2024 | FY2024")
    cost_center = db.Column(db.String(100))
    justification = db.Column(db.Text)
    funding_source = db.Column(db.String(200))

    approval_status = db.Column(
        db.String(20), nullable=False, default="pending",
        comment="pending | approved | rejected",
    )
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    approval_date = db.Column(db.DateTime(timezone=True))
    last_review_date = db.Column(db.DateTime(timezone=True))

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    approver = db.relationship("User", foreign_keys=[approved_by], lazy="joined")

    def to_dict(self):
        from app.services.budget_ledger import budget_status

        return {
            "id": self.id,
            "project_id": self.project_id,
            "budget_item_id": self.budget_item_id,
            "category": self.category,
            "estimated_cost": _money(self.estimated_cost),
            "actual_cost": _money(self.actual_cost),
            "variance": _money(self.variance),
            "forecast_remaining": _money(self.forecast_remaining),
            "contingency_percentage": _money(self.contingency_percentage),
            "budget_status": budget_status(self.estimated_cost, self.actual_cost),
            "fiscal_period": self.fiscal_period,
            "cost_center": self.cost_center,
            "justification": self.justification,
            "funding_source": self.funding_source,
            "approval_status": self.approval_status,
            "approved_by": self.approved_by,
            "approved_by_name": self.approver.name if self.approver else None,
            "approval_date": _iso(self.approval_date),
            "last_review_date": _iso(self.last_review_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<BudgetItem {self.id}: {self.budget_item_id} [{self.approval_status}]>"
