"""Add project assets and link feedback items to them

Revision ID: 202610180002_project_assets
Revises: 202610180001_panel_peace_schema
Create Date: 2026-10-18 00:02:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect, select


# revision identifiers, used by Alembic.
revision = "202610180002_project_assets"
down_revision = "202610180001_panel_peace_schema"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = inspect(bind)

    if "assets" not in inspector.get_table_names():
        op.create_table(
            "assets",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("asset_type", sa.String(length=50), nullable=False),
            sa.Column("file_path", sa.Text(), nullable=True),
            sa.Column("thumbnail_url", sa.Text(), nullable=True),
            sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_assets_project_id", "assets", ["project_id"])

    # asset_id used to be a free integer; drop references that cannot resolve
    metadata = sa.MetaData()
    metadata.reflect(bind=bind, only=("feedback_items",))
    feedback_table = metadata.tables["feedback_items"]
    dangling = [
        row.id
        for row in bind.execute(
            select(feedback_table.c.id).where(feedback_table.c.asset_id.is_not(None))
        )
    ]
    if dangling:
        bind.execute(
            feedback_table.update()
            .where(feedback_table.c.id.in_(dangling))
            .values(asset_id=None)
        )

    with op.batch_alter_table("feedback_items", recreate="always") as batch_op:
        batch_op.create_foreign_key(
            "fk_feedback_items_asset_id", "assets", ["asset_id"], ["id"], ondelete="SET NULL"
        )


def downgrade():
    with op.batch_alter_table("feedback_items", recreate="always") as batch_op:
        batch_op.drop_constraint("fk_feedback_items_asset_id", type_="foreignkey")
    op.drop_index("ix_assets_project_id", table_name="assets")
    op.drop_table("assets")
