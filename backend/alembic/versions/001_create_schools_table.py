"""Create schools table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `schools` table holding the directory entries.
How:   Integer identity key, BIGINT contact, image reference plus the
       Blob Store key used to delete the image.

Rollback: downgrade() drops the table (stored images are left untouched).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "schools",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("state", sa.String(255), nullable=False),

        # Ten digits exceed INTEGER's range
        sa.Column("contact", sa.BigInteger(), nullable=False),

        sa.Column("email_id", sa.String(320), nullable=False),
        sa.Column(
            "image",
            sa.String(1024),
            nullable=False,
            comment="Display reference: public relative path or absolute URL",
        ),
        sa.Column(
            "image_key",
            sa.String(1024),
            nullable=False,
            comment="Blob Store identifier of the image",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("schools")
