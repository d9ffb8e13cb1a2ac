"""Initial users and identity tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_oauth2_identities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("uid", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_user_oauth2_identity_user"),
        sa.UniqueConstraint("provider", "uid", name="uq_user_oauth2_identity_provider_uid"),
    )
    op.create_index(
        "ix_user_oauth2_identities_user_id", "user_oauth2_identities", ["user_id"], unique=False
    )
    op.create_index(
        "ix_user_oauth2_identities_provider", "user_oauth2_identities", ["provider"], unique=False
    )

    op.create_table(
        "user_openid_identities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("identity", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_user_openid_identity_user"),
        sa.UniqueConstraint("identity", name="uq_user_openid_identity_identity"),
    )
    op.create_index(
        "ix_user_openid_identities_user_id", "user_openid_identities", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_user_openid_identities_user_id", table_name="user_openid_identities")
    op.drop_table("user_openid_identities")
    op.drop_index("ix_user_oauth2_identities_provider", table_name="user_oauth2_identities")
    op.drop_index("ix_user_oauth2_identities_user_id", table_name="user_oauth2_identities")
    op.drop_table("user_oauth2_identities")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
