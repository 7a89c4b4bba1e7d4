"""Create the users table.

Revision ID: 001_create_users
Revises: None
Create Date: 2025-10-28

No seed rows: the table starts empty. Constraint names must match the model's
naming convention; the integrity classifier maps `uq_users_username` and
`uq_users_email` to the two conflict errors. Each unique constraint is backed by
its own index, so no separate lookup indexes are created.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from user_registry.database.functions import gen_random_uuid

revision: str = "001_create_users"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False, server_default=gen_random_uuid()),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )


def downgrade() -> None:
    op.drop_table("users")
