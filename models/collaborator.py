"""Links between users and the projects they work on.

A Collaborator is a talent user working on a project in a production role
(penciler, inker, colorist, letterer, writer ...)
A ProjectEditor is editorial staff granted management access to a project
A user appears at most once per project in each table

"""
from __future__ import annotations

from datetime import datetime

from database import db


class Collaborator(db.Model):
    __tablename__ = "collaborators"

    __table_args__ = (
        db.UniqueConstraint("user_id", "project_id", name="uq_collaborator_user_project"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    role = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", back_populates="collaborations")
    project = db.relationship("Project", back_populates="collaborators")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "role": self.role,
            "user": self.user.to_dict() if self.user else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Collaborator user={self.user_id} project={self.project_id}>"


class ProjectEditor(db.Model):
    __tablename__ = "project_editors"

    __table_args__ = (
        db.UniqueConstraint("user_id", "project_id", name="uq_project_editor_user_project"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    assigned_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assignment_role = db.Column(db.String(30), nullable=False, default="editor")
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", back_populates="editor_assignments", foreign_keys=[user_id])
    assigner = db.relationship("User", foreign_keys=[assigned_by])
    project = db.relationship("Project", back_populates="editors")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "assigned_by": self.assigned_by,
            "assignment_role": self.assignment_role,
            "user": self.user.to_dict() if self.user else None,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
        }

    def __repr__(self):
        return f"<ProjectEditor user={self.user_id} project={self.project_id}>"
