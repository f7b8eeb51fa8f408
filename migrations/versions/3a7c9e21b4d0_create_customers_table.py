"""create customers table

Revision ID: 3a7c9e21b4d0
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "3a7c9e21b4d0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    existing_tables = set(inspect(bind).get_table_names())

    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("email", sa.String(length=320), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("age", sa.Integer(), nullable=False),
            sa.Column("gender", sa.String(length=16), nullable=False),
            sa.Column("profile_image_id", sa.String(length=64), nullable=True),
            sa.UniqueConstraint("email", name="uq_customers_email"),
        )


def downgrade() -> None:
    op.drop_table("customers")
