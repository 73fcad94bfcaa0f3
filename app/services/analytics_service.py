"""Read-only portfolio analytics: budget totals and project status spread."""

from decimal import Decimal

from sqlalchemy import func

from app.models import db
from app.models.budget import BudgetItem
from app.models.project import Project
from app.services.permission import Capability, current_engine


def _total(value) -> float:
    return float(value or 0)


def budget_summary(acting_user, project_id=None) -> dict:
    """Sum estimated/actual/variance/forecast across budget items.

    ``progress`` is actual spend as a percentage of the estimate, capped
    at 100.
    """
    current_engine().require(acting_user, Capability.VIEW_ANALYTICS)

    q = db.session.query(
        func.coalesce(func.sum(BudgetItem.estimated_cost), 0),
        func.coalesce(func.sum(BudgetItem.actual_cost), 0),
        func.coalesce(func.sum(BudgetItem.variance), 0),
        func.coalesce(func.sum(BudgetItem.forecast_remaining), 0),
        func.count(BudgetItem.id),
    )
    if project_id is not None:
        q = q.filter(BudgetItem.project_id == project_id)
    estimated, actual, variance, forecast, count = q.one()

    estimated_dec = Decimal(str(estimated or 0))
    progress = 0.0
    if estimated_dec > 0:
        progress = min(float(Decimal(str(actual or 0)) / estimated_dec * 100), 100.0)

    return {
        "totalEstimated": _total(estimated),
        "totalActual": _total(actual),
        "totalVariance": _total(variance),
        "totalForecastRemaining": _total(forecast),
        "itemCount": int(count or 0),
        "progress": round(progress, 2),
    }


def project_status_counts(acting_user) -> list[dict]:
    """Project counts per status, most frequent first."""
    current_engine().require(acting_user, Capability.VIEW_ANALYTICS)

    count_col = func.count(Project.id).label("count")
    rows = (
        db.session.query(Project.status, count_col)
        .group_by(Project.status)
        .order_by(count_col.desc(), Project.status.asc())
        .all()
    )
    return [{"status": status, "count": int(count)} for status, count in rows]
