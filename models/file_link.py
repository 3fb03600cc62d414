"""File references attached to workflow steps and projects.

A FileLink is an external URL (shared drive, Dropbox ...) filed under a workflow step
A FileUpload records the metadata of an uploaded file; the bytes live elsewhere

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from database import db


class FileCategory(StrEnum):
    ARTWORK = "artwork"
    SCRIPT = "script"
    MISC = "misc"


class FileLink(db.Model):
    __tablename__ = "file_links"

    id = db.Column(db.Integer, primary_key=True)
    workflow_step_id = db.Column(
        db.Integer, db.ForeignKey("workflow_steps.id"), nullable=False, index=True
    )
    url = db.Column(db.Text, nullable=False)
    title = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(20), nullable=False, default=FileCategory.MISC.value)
    added_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    workflow_step = db.relationship("WorkflowStep", back_populates="file_links")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "workflow_step_id": self.workflow_step_id,
            "url": self.url,
            "title": self.title,
            "category": self.category,
            "added_by": self.added_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<FileLink {self.url}>"


class FileUpload(db.Model):
    __tablename__ = "file_uploads"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    workflow_step_id = db.Column(db.Integer, db.ForeignKey("workflow_steps.id"), nullable=True)
    feedback_item_id = db.Column(db.Integer, db.ForeignKey("feedback_items.id"), nullable=True)
    file_name = db.Column(db.Text, nullable=False)
    original_name = db.Column(db.Text, nullable=False)
    file_path = db.Column(db.Text, nullable=False)
    file_type = db.Column(db.String(100), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    category = db.Column(db.String(20), nullable=False, default=FileCategory.MISC.value)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    uploaded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    project = db.relationship("Project", back_populates="file_uploads")
    uploader = db.relationship("User", foreign_keys=[uploaded_by])

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "workflow_step_id": self.workflow_step_id,
            "feedback_item_id": self.feedback_item_id,
            "file_name": self.file_name,
            "original_name": self.original_name,
            "file_path": self.file_path,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "category": self.category,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    def __repr__(self):
        return f"<FileUpload {self.original_name}>"
