"""Add the minutes_records table for versioned meeting minutes.

Revision ID: 001_minutes_records
Revises:
Create Date: 2026-10-19

One row per version of a minutes document. List sections are JSON columns.
Lineage uses parent_id + is_latest with no foreign key constraint
(referential integrity is maintained by the version chain).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_minutes_records"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json_list(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.JSON(),
        server_default=sa.text("'[]'::json"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "minutes_records",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("owner_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column(
            "executive_summary",
            sa.Text(),
            server_default=sa.text("''"),
            nullable=False,
        ),
        sa.Column(
            "action_minutes",
            sa.Text(),
            server_default=sa.text("''"),
            nullable=False,
        ),
        _json_list("attendees_data"),
        _json_list("decisions_data"),
        _json_list("risks_data"),
        _json_list("action_items_data"),
        _json_list("observations_data"),
        sa.Column(
            "version",
            sa.Integer(),
            server_default=sa.text("1"),
            nullable=False,
        ),
        sa.Column("parent_id", UUID(as_uuid=True), nullable=True),
        sa.Column(
            "is_latest",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_index(
        "idx_minutes_owner_latest", "minutes_records", ["owner_id", "is_latest"]
    )
    op.create_index(
        "idx_minutes_parent_latest", "minutes_records", ["parent_id", "is_latest"]
    )


def downgrade() -> None:
    op.drop_index("idx_minutes_parent_latest", table_name="minutes_records")
    op.drop_index("idx_minutes_owner_latest", table_name="minutes_records")
    op.drop_table("minutes_records")
