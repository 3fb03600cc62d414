"""Feedback items are editorial change requests raised against a project asset.

A FeedbackItem belongs to a Project and is requested by a User
A FeedbackItem may point at one of the project's Assets
A FeedbackItem carries a priority and moves from pending to resolved or rejected
Comments attach to a FeedbackItem and are listed in creation order
Descriptions and comments are written in Markdown and rendered to sanitized HTML

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

import bleach
from database import db
from markdown import markdown as render_markdown
from markupsafe import Markup


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FeedbackStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


def render_markdown_html(text: Optional[str]) -> Markup:
    """Render feedback Markdown into sanitized HTML."""
    if not text:
        return Markup("")
    html = render_markdown(
        text,
        extensions=["extra", "sane_lists"],
        output_format="html5",
        tab_length=2,
    )
    allowed_tags = list(bleach.sanitizer.ALLOWED_TAGS) + [
        "p",
        "pre",
        "code",
        "ul",
        "ol",
        "li",
        "table",
        "thead",
        "tbody",
        "tr",
        "th",
        "td",
        "span",
        "strong",
        "em",
        "blockquote",
        "br",
        "h3",
        "h4",
        "hr",
        "img",
    ]
    allowed_attributes = {
        **bleach.sanitizer.ALLOWED_ATTRIBUTES,
        "a": ["href", "title", "target", "rel"],
        "img": ["src", "alt", "title"],
    }
    sanitized_html = bleach.clean(html, tags=allowed_tags, attributes=allowed_attributes)
    return Markup(sanitized_html)


class FeedbackItem(db.Model):
    __tablename__ = "feedback_items"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    priority = db.Column(db.String(10), nullable=False, default=Priority.MEDIUM.value)
    status = db.Column(db.String(20), nullable=False, default=FeedbackStatus.PENDING.value)
    asset_type = db.Column(db.String(50), nullable=False)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True)
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    thumbnail_url = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    project = db.relationship("Project", back_populates="feedback_items")
    requester = db.relationship("User", foreign_keys=[requested_by])
    asset = db.relationship("Asset", back_populates="feedback_items")
    comments = db.relationship(
        "Comment",
        back_populates="feedback_item",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Comment.id",
    )

    @property
    def description_html(self):
        return render_markdown_html(self.description)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "description_html": str(self.description_html),
            "priority": self.priority,
            "status": self.status,
            "asset_type": self.asset_type,
            "asset_id": self.asset_id,
            "asset_name": self.asset.name if self.asset else None,
            "requested_by": self.requested_by,
            "thumbnail_url": self.thumbnail_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<FeedbackItem {self.title}>"


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)
    feedback_id = db.Column(db.Integer, db.ForeignKey("feedback_items.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    feedback_item = db.relationship("FeedbackItem", back_populates="comments")
    author = db.relationship("User", foreign_keys=[user_id])

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "feedback_id": self.feedback_id,
            "user_id": self.user_id,
            "author": self.author.display_name if self.author else None,
            "content": self.content,
            "content_html": str(render_markdown_html(self.content)),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Comment {self.id}>"
