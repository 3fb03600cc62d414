"""Create the Panel Peace schema (SQLite-safe, idempotent)."""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "202610180001_panel_peace_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names):
    return [
        sa.Column(name, sa.DateTime(), nullable=False, server_default=sa.func.now())
        for name in names
    ]


def upgrade():
    conn = op.get_bind()
    existing = set(sa.inspect(conn).get_table_names())

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("username", sa.String(length=80), nullable=False, unique=True),
            sa.Column("password_hash", sa.Text(), nullable=True),
            sa.Column("full_name", sa.String(length=120), nullable=True),
            sa.Column("email", sa.String(length=120), nullable=True, unique=True),
            sa.Column("role", sa.String(length=50), nullable=True),
            sa.Column("avatar_url", sa.Text(), nullable=True),
            sa.Column("is_editor", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_site_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("editor_role", sa.String(length=30), nullable=True),
            sa.Column("has_edit_access", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps("created_at"),
        )

    if "projects" not in existing:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("issue", sa.String(length=50), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="in_progress"),
            sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("cover_image", sa.Text(), nullable=True),
            sa.Column("page_size", sa.String(length=30), nullable=True),
            sa.Column("format_type", sa.String(length=30), nullable=True),
            sa.Column("due_date", sa.DateTime(), nullable=True),
            sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("interior_page_count", sa.Integer(), nullable=False, server_default="22"),
            sa.Column("cover_count", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("filler_page_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("penciler_pages_per_week", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("inker_pages_per_week", sa.Integer(), nullable=False, server_default="7"),
            sa.Column("colorist_pages_per_week", sa.Integer(), nullable=False, server_default="10"),
            sa.Column("letterer_pages_per_week", sa.Integer(), nullable=False, server_default="15"),
            sa.Column("pencil_batch_size", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("ink_batch_size", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("letter_batch_size", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("approval_days", sa.Integer(), nullable=False, server_default="2"),
            sa.Column("plot_deadline", sa.DateTime(), nullable=True),
            sa.Column("cover_deadline", sa.DateTime(), nullable=True),
            *_timestamps("created_at", "updated_at"),
        )
        op.create_index("ix_projects_created_by", "projects", ["created_by"])

    if "workflow_steps" not in existing:
        op.create_table(
            "workflow_steps",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("step_type", sa.String(length=50), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="not_started"),
            sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
            sa.Column("start_date", sa.DateTime(), nullable=True),
            sa.Column("due_date", sa.DateTime(), nullable=True),
            sa.Column("completed_date", sa.DateTime(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False),
            sa.Column("rating_storytelling", sa.Integer(), nullable=True),
            sa.Column("rating_artwork", sa.Integer(), nullable=True),
            sa.Column("rating_consistency", sa.Integer(), nullable=True),
            sa.Column("rating_timeliness", sa.Integer(), nullable=True),
            sa.Column("rating_communication", sa.Integer(), nullable=True),
            sa.Column("rating_overall", sa.Integer(), nullable=True),
            *_timestamps("created_at", "updated_at"),
            sa.UniqueConstraint("project_id", "sort_order", name="uq_workflow_step_project_order"),
        )
        op.create_index("ix_workflow_steps_project_id", "workflow_steps", ["project_id"])

    if "feedback_items" not in existing:
        op.create_table(
            "feedback_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("asset_type", sa.String(length=50), nullable=False),
            sa.Column("asset_id", sa.Integer(), nullable=True),
            sa.Column("requested_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("thumbnail_url", sa.Text(), nullable=True),
            *_timestamps("created_at"),
        )
        op.create_index("ix_feedback_items_project_id", "feedback_items", ["project_id"])

    if "comments" not in existing:
        op.create_table(
            "comments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("feedback_id", sa.Integer(), sa.ForeignKey("feedback_items.id"), nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            *_timestamps("created_at"),
        )
        op.create_index("ix_comments_feedback_id", "comments", ["feedback_id"])

    if "deadlines" not in existing:
        op.create_table(
            "deadlines",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("due_date", sa.DateTime(), nullable=False),
            sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            *_timestamps("created_at"),
        )
        op.create_index("ix_deadlines_project_id", "deadlines", ["project_id"])

    if "collaborators" not in existing:
        op.create_table(
            "collaborators",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("role", sa.String(length=50), nullable=False),
            *_timestamps("created_at"),
            sa.UniqueConstraint("user_id", "project_id", name="uq_collaborator_user_project"),
        )
        op.create_index("ix_collaborators_user_id", "collaborators", ["user_id"])
        op.create_index("ix_collaborators_project_id", "collaborators", ["project_id"])

    if "project_editors" not in existing:
        op.create_table(
            "project_editors",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
            sa.Column("assignment_role", sa.String(length=30), nullable=False, server_default="editor"),
            *_timestamps("assigned_at"),
            sa.UniqueConstraint("user_id", "project_id", name="uq_project_editor_user_project"),
        )
        op.create_index("ix_project_editors_user_id", "project_editors", ["user_id"])
        op.create_index("ix_project_editors_project_id", "project_editors", ["project_id"])

    if "file_links" not in existing:
        op.create_table(
            "file_links",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("workflow_step_id", sa.Integer(), sa.ForeignKey("workflow_steps.id"), nullable=False),
            sa.Column("url", sa.Text(), nullable=False),
            sa.Column("title", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=20), nullable=False, server_default="misc"),
            sa.Column("added_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
            *_timestamps("created_at"),
        )
        op.create_index("ix_file_links_workflow_step_id", "file_links", ["workflow_step_id"])

    if "file_uploads" not in existing:
        op.create_table(
            "file_uploads",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("workflow_step_id", sa.Integer(), sa.ForeignKey("workflow_steps.id"), nullable=True),
            sa.Column("feedback_item_id", sa.Integer(), sa.ForeignKey("feedback_items.id"), nullable=True),
            sa.Column("file_name", sa.Text(), nullable=False),
            sa.Column("original_name", sa.Text(), nullable=False),
            sa.Column("file_path", sa.Text(), nullable=False),
            sa.Column("file_type", sa.String(length=100), nullable=True),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("category", sa.String(length=20), nullable=False, server_default="misc"),
            sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            *_timestamps("uploaded_at"),
        )
        op.create_index("ix_file_uploads_project_id", "file_uploads", ["project_id"])

    if "panel_layouts" not in existing:
        op.create_table(
            "panel_layouts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("page_number", sa.Integer(), nullable=False),
            sa.Column("layout", sa.JSON(), nullable=False),
            sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            *_timestamps("created_at", "updated_at"),
        )
        op.create_index("ix_panel_layouts_project_id", "panel_layouts", ["project_id"])


def downgrade():
    for table in (
        "panel_layouts",
        "file_uploads",
        "file_links",
        "project_editors",
        "collaborators",
        "deadlines",
        "comments",
        "feedback_items",
        "workflow_steps",
        "projects",
        "users",
    ):
        op.drop_table(table)
