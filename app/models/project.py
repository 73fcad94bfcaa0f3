"""Project domain model: Project, its single ProjectPlan and its lifecycle history."""

from datetime import datetime, timezone

from app.models import db

PROJECT_STATUSES = (
    "planning",
    "budgeting",
    "in_progress",
    "on_hold",
    "completed",
    "cancelled",
)

# Free-text plan fields accepted on creation, in display order.
PLAN_TEXT_FIELDS = (
    "methodology",
    "tools_to_be_used",
    "deliverables",
    "dependencies",
    "quality_standards",
    "communication_plan",
    "change_control_process",
    "planning_assumptions",
    "planning_constraints",
    "planning_risks",
    "baseline_scope",
    "baseline_schedule",
)


def _iso(value):
    return value.isoformat() if value else None


class Project(db.Model):
    """Unit of work whose plan is gated on budget approval."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(
        db.String(30), nullable=False, default="planning",
        comment="planning | budgeting | in_progress | on_hold | completed | cancelled",
    )
    owner_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
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

    owner = db.relationship("User", foreign_keys=[owner_id], lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "owner_id": self.owner_id,
            "owner_name": self.owner.name if self.owner else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name} [{self.status}]>"


class ProjectPlan(db.Model):
    """The single planning artifact of a project."""

    __tablename__ = "project_plans"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id"),
        nullable=False, unique=True, index=True,
    )
    planning_start_date = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    methodology = db.Column(db.Text)
    tools_to_be_used = db.Column(db.Text)
    deliverables = db.Column(db.Text)
    dependencies = db.Column(db.Text)
    quality_standards = db.Column(db.Text)
    communication_plan = db.Column(db.Text)
    change_control_process = db.Column(db.Text)
    planning_assumptions = db.Column(db.Text)
    planning_constraints = db.Column(db.Text)
    planning_risks = db.Column(db.Text)
    baseline_scope = db.Column(db.Text)
    baseline_schedule = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
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

    def to_dict(self):
        data = {
            "id": self.id,
            "project_id": self.project_id,
            "planning_start_date": _iso(self.planning_start_date),
        }
        for field in PLAN_TEXT_FIELDS:
            data[field] = getattr(self, field)
        data.update({
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        })
        return data


class WorkflowTransition(db.Model):
    """One recorded change of a project's lifecycle status."""

    __tablename__ = "workflow_transitions"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True,
    )
    from_status = db.Column(db.String(30), nullable=False)
    to_status = db.Column(db.String(30), nullable=False)
    transitioned_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    transitioned_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    status = db.Column(db.String(20), nullable=False, default="completed")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "transitioned_by": self.transitioned_by,
            "transitioned_at": _iso(self.transitioned_at),
            "status": self.status,
        }
