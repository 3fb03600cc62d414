"""Dashboard summary endpoint."""
from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, g

from models.deadline import Deadline
from models.feedback import FeedbackItem
from routes import json_success
from services.collection_service import dashboard_stats
from services.project_service import visible_projects_query

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.route("/stats", methods=["GET"])
def stats():
    projects = visible_projects_query(g.user).all()
    project_ids = [project.id for project in projects]
    feedback = FeedbackItem.query.filter(FeedbackItem.project_id.in_(project_ids)).all()
    deadlines = Deadline.query.filter(Deadline.project_id.in_(project_ids)).all()
    summary = dashboard_stats(
        projects,
        feedback,
        deadlines,
        now=datetime.utcnow(),
        days=current_app.config.get("UPCOMING_DEADLINE_DAYS", 7),
    )
    return json_success(stats=summary)
