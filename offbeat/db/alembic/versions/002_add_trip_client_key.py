"""Add client_key to trips

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

Adds a nullable client_key column holding the Idempotency-Key of the create
request, unique per user, so a retried offline sync cannot create the same
trip twice.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Add client_key with a per-user unique constraint."""
    with op.batch_alter_table("trips") as batch_op:
        batch_op.add_column(sa.Column("client_key", sa.Text(), nullable=True))
        batch_op.create_unique_constraint("uq_trips_user_client_key", ["user_id", "client_key"])


def downgrade() -> None:
    """Drop client_key."""
    with op.batch_alter_table("trips") as batch_op:
        batch_op.drop_constraint("uq_trips_user_client_key", type_="unique")
        batch_op.drop_column("client_key")
