"""Assets are the deliverables of a project that feedback is raised against.

An Asset belongs to a Project and is created by an editor
An Asset is a script, a page of artwork, a cover ... identified by asset_type
FeedbackItems may point at an Asset; deleting the asset unlinks that feedback

"""
from __future__ import annotations

from datetime import datetime

from database import db


class Asset(db.Model):
    __tablename__ = "assets"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    name = db.Column(db.Text, nullable=False)
    asset_type = db.Column(db.String(50), nullable=False)
    file_path = db.Column(db.Text, nullable=True)
    thumbnail_url = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    project = db.relationship("Project", back_populates="assets")
    feedback_items = db.relationship("FeedbackItem", back_populates="asset", lazy=True)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "asset_type": self.asset_type,
            "file_path": self.file_path,
            "thumbnail_url": self.thumbnail_url,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Asset {self.name}>"
