"""A workflow step is one stage of producing a project (plot, pencils, inks, ...).

A WorkflowStep belongs to exactly one Project
Steps are totally ordered by sort_order, which is unique within a project
The predecessor and successor of a step are derived from sort_order, never stored
Progress is a percentage in [0, 100]; binary steps only ever hold 0 or 100
Quality ratings (1-10) are recorded once a step is completed

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from database import db


class StepStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    DELAYED = "delayed"


class StepType(StrEnum):
    PLOT_DEVELOPMENT = "plot_development"
    COVERS = "covers"
    SCRIPT = "script"
    PENCILS = "pencils"
    INKS = "inks"
    COLORS = "colors"
    LETTERS = "letters"
    PROOFS = "proofs"
    EDITORIAL = "editorial"
    FINAL_EDITORIAL = "final_editorial"
    PRODUCTION = "production"


QUALITY_RATING_FIELDS = (
    "rating_storytelling",
    "rating_artwork",
    "rating_consistency",
    "rating_timeliness",
    "rating_communication",
    "rating_overall",
)


class WorkflowStep(db.Model):
    __tablename__ = "workflow_steps"

    __table_args__ = (
        db.UniqueConstraint("project_id", "sort_order", name="uq_workflow_step_project_order"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    step_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=StepStatus.NOT_STARTED.value)
    progress = db.Column(db.Integer, nullable=False, default=0)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    due_date = db.Column(db.DateTime, nullable=True)
    completed_date = db.Column(db.DateTime, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False)

    rating_storytelling = db.Column(db.Integer, nullable=True)
    rating_artwork = db.Column(db.Integer, nullable=True)
    rating_consistency = db.Column(db.Integer, nullable=True)
    rating_timeliness = db.Column(db.Integer, nullable=True)
    rating_communication = db.Column(db.Integer, nullable=True)
    rating_overall = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    project = db.relationship("Project", back_populates="workflow_steps")
    assignee = db.relationship("User", foreign_keys=[assigned_to])
    file_links = db.relationship(
        "FileLink",
        back_populates="workflow_step",
        lazy=True,
        cascade="all, delete-orphan",
    )

    @property
    def status_enum(self) -> StepStatus:
        return StepStatus(self.status)

    @status_enum.setter
    def status_enum(self, value: StepStatus) -> None:
        self.status = value.value

    @property
    def quality_ratings(self) -> dict[str, int | None]:
        return {field: getattr(self, field) for field in QUALITY_RATING_FIELDS}

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "step_type": self.step_type,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "progress": self.progress,
            "assigned_to": self.assigned_to,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed_date": self.completed_date.isoformat() if self.completed_date else None,
            "sort_order": self.sort_order,
            "quality_ratings": self.quality_ratings,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<WorkflowStep {self.step_type} #{self.sort_order}>"
