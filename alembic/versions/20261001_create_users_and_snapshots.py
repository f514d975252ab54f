"""create users and insight_snapshots"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001"
down_revision = None
branch_labels = None
depends_on = None

SNAPSHOT_INDEX = "ix_insight_snapshots_owner_kind_created"


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "insight_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("inputs", sa.JSON(), nullable=True),
        sa.Column("result", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_insight_snapshots_id", "insight_snapshots", ["id"])
    # Serves "latest by created_at" per owner and kind.
    op.create_index(
        SNAPSHOT_INDEX,
        "insight_snapshots",
        ["owner_id", "kind", "created_at"],
    )


def downgrade() -> None:
    op.drop_index(SNAPSHOT_INDEX, table_name="insight_snapshots")
    op.drop_index("ix_insight_snapshots_id", table_name="insight_snapshots")
    op.drop_table("insight_snapshots")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
