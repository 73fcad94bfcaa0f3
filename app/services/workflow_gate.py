"""Workflow gate: may a project move on to plan creation?

The answer is derived from budget state on every call instead of being
stored on the project, so it can never go stale.
"""

from sqlalchemy import exists, select

from app.models import db
from app.models.budget import BudgetItem


def can_create_plan(project_id) -> bool:
    """True iff at least one budget item of the project is approved."""
    stmt = select(
        exists().where(
            BudgetItem.project_id == project_id,
            BudgetItem.approval_status == "approved",
        )
    )
    return bool(db.session.execute(stmt).scalar())
