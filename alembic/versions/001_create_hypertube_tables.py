"""Create users, movies and sessions tables

Revision ID: 001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  The three collections the request pipeline reads and writes.
Rollback: downgrade() drops all three tables (destructive).
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
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("login", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("firstname", sa.String(128), nullable=False, server_default=sa.text("''")),
        sa.Column("lastname", sa.String(128), nullable=False, server_default=sa.text("''")),
        sa.Column("picture", sa.String(255), nullable=True),
        sa.Column("lang", sa.String(8), nullable=False, server_default=sa.text("'en'")),
        sa.Column(
            "password",
            sa.String(255),
            nullable=False,
            server_default=sa.text("''"),
            comment="bcrypt hash, blanked in every response",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("login", name="uq_users_login"),
    )

    op.create_table(
        "movies",
        sa.Column("id_imdb", sa.String(16), nullable=False, comment="IMDb identifier, e.g. tt0133093"),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id_imdb", name="pk_movies"),
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("identity_ref", sa.String(64), nullable=True, comment="users.id of the logged-in user"),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sessions"),
    )
    op.create_index("idx_sessions_expires_at", "sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_index("idx_sessions_expires_at", table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("movies")
    op.drop_table("users")
