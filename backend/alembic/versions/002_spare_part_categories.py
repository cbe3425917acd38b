"""spare part categories

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "spare_part_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_spare_part_categories_name"),
    )
    # Existing free-text categories become managed ones.
    op.execute(
        "INSERT INTO spare_part_categories (name, is_active) "
        "SELECT DISTINCT category, true FROM spare_parts WHERE category IS NOT NULL"
    )


def downgrade() -> None:
    op.drop_table("spare_part_categories")
