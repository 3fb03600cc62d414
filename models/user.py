""" Represents a user of the studio.

Users are either editorial staff or talent.
Editors (is_editor) manage projects; site admins can see and manage everything.
An editor's editor_role decides which projects they may delete (see project_service).
Talent users are linked to projects as Collaborators with a production role.
A User can only see projects they created, edit, or collaborate on.

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from werkzeug.security import generate_password_hash, check_password_hash
from database import db


class EditorRole(StrEnum):
    """Editorial seniority used for delete permissions."""

    EDITOR = "editor"
    SENIOR_EDITOR = "senior_editor"
    EDITOR_IN_CHIEF = "editor_in_chief"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.Text)
    full_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    role = db.Column(db.String(50), nullable=True)
    avatar_url = db.Column(db.Text, nullable=True)
    is_editor = db.Column(db.Boolean, nullable=False, default=False)
    is_site_admin = db.Column(db.Boolean, nullable=False, default=False)
    editor_role = db.Column(db.String(30), nullable=True)
    has_edit_access = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    created_projects = db.relationship("Project", back_populates="creator", lazy=True)
    collaborations = db.relationship(
        "Collaborator",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    editor_assignments = db.relationship(
        "ProjectEditor",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
        foreign_keys="ProjectEditor.user_id",
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    @property
    def editor_role_enum(self) -> EditorRole | None:
        if not self.editor_role:
            return None
        try:
            return EditorRole(self.editor_role)
        except ValueError:
            return None

    @property
    def can_manage_projects(self) -> bool:
        """True when the user may create projects and workflow records."""

        if self.is_site_admin:
            return True
        return bool(self.is_editor and self.has_edit_access)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "avatar_url": self.avatar_url,
            "is_editor": self.is_editor,
            "is_site_admin": self.is_site_admin,
            "editor_role": self.editor_role,
            "has_edit_access": self.has_edit_access,
        }

    def __repr__(self):
        return f"<User {self.id}>"
