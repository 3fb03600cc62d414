"""Deadlines are editor-defined milestones on a project.

A Deadline belongs to a Project and always has a due date
A Deadline is independent of the due dates of the workflow steps
Only pending deadlines that are not yet past appear in the upcoming feed

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from database import db
from models.feedback import Priority


class DeadlineStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    MISSED = "missed"


class Deadline(db.Model):
    __tablename__ = "deadlines"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime, nullable=False)
    priority = db.Column(db.String(10), nullable=False, default=Priority.MEDIUM.value)
    status = db.Column(db.String(20), nullable=False, default=DeadlineStatus.PENDING.value)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    project = db.relationship("Project", back_populates="deadlines")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "priority": self.priority,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Deadline {self.title}>"
