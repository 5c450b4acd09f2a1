"""Create votes table

Revision ID: 0000_create_votes
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision = "0000_create_votes"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "votes",
        sa.Column(
            "id",
            mysql.BIGINT(unsigned=True).with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("number", mysql.SMALLINT(), nullable=False),
        sa.Column(
            "fingerprint",
            mysql.VARCHAR(length=128, collation="utf8mb4_bin").with_variant(
                sa.VARCHAR(length=128), "sqlite"
            ),
            nullable=False,
        ),
        sa.Column(
            "ip", sa.VARCHAR(length=64), nullable=False, server_default="unknown"
        ),
        sa.Column("user_agent", sa.VARCHAR(length=512), nullable=True),
        sa.Column(
            "created_at",
            mysql.DATETIME(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("fingerprint", name="uniq_vote_fingerprint"),
        sa.CheckConstraint(
            "number >= 0 AND number <= 100", name="ck_votes_number_range"
        ),
        mysql_engine="InnoDB",
        mysql_charset="utf8mb4",
    )
    op.create_index("idx_votes_created", "votes", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_votes_created", table_name="votes")
    op.drop_table("votes")
