"""A project is one comic issue moving through production.

A Project is created by an editor, who is automatically assigned as its first ProjectEditor
A Project owns its WorkflowSteps, Assets, FeedbackItems, Deadlines and PanelLayouts
The production metrics (page counts, weekly throughput, batch sizes, approval days)
drive the planned due dates of the workflow steps
Status and progress are set by editors; they are never derived automatically

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from database import db


class ProjectStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    NEEDS_REVIEW = "needs_review"
    DELAYED = "delayed"
    COMPLETED = "completed"


# Columns that feed the workflow schedule; changing one re-plans existing steps.
SCHEDULE_METRIC_FIELDS = (
    "due_date",
    "interior_page_count",
    "filler_page_count",
    "cover_count",
)


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    issue = db.Column(db.String(50), nullable=True)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ProjectStatus.IN_PROGRESS.value)
    progress = db.Column(db.Integer, nullable=False, default=0)
    cover_image = db.Column(db.Text, nullable=True)
    page_size = db.Column(db.String(30), nullable=True, default="standard")
    format_type = db.Column(db.String(30), nullable=True, default="print")
    due_date = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    interior_page_count = db.Column(db.Integer, nullable=False, default=22)
    cover_count = db.Column(db.Integer, nullable=False, default=1)
    filler_page_count = db.Column(db.Integer, nullable=False, default=0)
    penciler_pages_per_week = db.Column(db.Integer, nullable=False, default=5)
    inker_pages_per_week = db.Column(db.Integer, nullable=False, default=7)
    colorist_pages_per_week = db.Column(db.Integer, nullable=False, default=10)
    letterer_pages_per_week = db.Column(db.Integer, nullable=False, default=15)
    pencil_batch_size = db.Column(db.Integer, nullable=False, default=5)
    ink_batch_size = db.Column(db.Integer, nullable=False, default=5)
    letter_batch_size = db.Column(db.Integer, nullable=False, default=5)
    approval_days = db.Column(db.Integer, nullable=False, default=2)
    plot_deadline = db.Column(db.DateTime, nullable=True)
    cover_deadline = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    creator = db.relationship("User", back_populates="created_projects")
    workflow_steps = db.relationship(
        "WorkflowStep",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="WorkflowStep.sort_order",
    )
    feedback_items = db.relationship(
        "FeedbackItem",
        back_populates="project",
        lazy=True,
        cascade="all, delete-orphan",
    )
    deadlines = db.relationship(
        "Deadline",
        back_populates="project",
        lazy=True,
        cascade="all, delete-orphan",
    )
    assets = db.relationship(
        "Asset",
        back_populates="project",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Asset.id",
    )
    panel_layouts = db.relationship(
        "PanelLayout",
        back_populates="project",
        lazy=True,
        cascade="all, delete-orphan",
    )
    collaborators = db.relationship(
        "Collaborator",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    editors = db.relationship(
        "ProjectEditor",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    file_uploads = db.relationship(
        "FileUpload",
        back_populates="project",
        lazy=True,
        cascade="all, delete-orphan",
    )

    @property
    def status_enum(self) -> ProjectStatus | None:
        try:
            return ProjectStatus(self.status)
        except ValueError:
            return None

    @property
    def is_completed(self) -> bool:
        return self.status == ProjectStatus.COMPLETED.value

    @property
    def total_page_count(self) -> int:
        return (self.interior_page_count or 0) + (self.filler_page_count or 0)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "issue": self.issue,
            "description": self.description,
            "status": self.status,
            "progress": self.progress,
            "cover_image": self.cover_image,
            "page_size": self.page_size,
            "format_type": self.format_type,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_by": self.created_by,
            "interior_page_count": self.interior_page_count,
            "cover_count": self.cover_count,
            "filler_page_count": self.filler_page_count,
            "penciler_pages_per_week": self.penciler_pages_per_week,
            "inker_pages_per_week": self.inker_pages_per_week,
            "colorist_pages_per_week": self.colorist_pages_per_week,
            "letterer_pages_per_week": self.letterer_pages_per_week,
            "pencil_batch_size": self.pencil_batch_size,
            "ink_batch_size": self.ink_batch_size,
            "letter_batch_size": self.letter_batch_size,
            "approval_days": self.approval_days,
            "plot_deadline": self.plot_deadline.isoformat() if self.plot_deadline else None,
            "cover_deadline": self.cover_deadline.isoformat() if self.cover_deadline else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.title}>"
