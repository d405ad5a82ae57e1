"""Create users, bugs and bug_tags tables

Revision ID: 001
Revises: None
Create Date: 2026-10-16 00:00:00.000000+00:00

What:  Initial schema: users (owned by the auth service, read here), bugs
       and their ordered tags.
How:   Generic SQLAlchemy types (Uuid, DateTime(timezone=True)) so the same
       migration runs on PostgreSQL and SQLite.

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
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="Written by the auth service; never returned by this API",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "bugs",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'Open'"),
        ),
        sa.Column(
            "priority",
            sa.Integer(),
            nullable=False,
            comment="1-4 from severity at creation time; not recomputed on edits",
        ),
        sa.Column("reported_by", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("assigned_to", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["reported_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_bugs_status_severity_assigned",
        "bugs",
        ["status", "severity", "assigned_to"],
    )
    op.create_index("idx_bugs_reported_by", "bugs", ["reported_by"])
    op.create_index("idx_bugs_created_at", "bugs", [sa.text("created_at DESC")])

    op.create_table(
        "bug_tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("bug_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "position",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Order in which the tag model returned the tag",
        ),
        sa.Column("tag", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["bug_id"], ["bugs.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_bug_tags_tag", "bug_tags", ["tag"])
    op.create_index("idx_bug_tags_bug_id", "bug_tags", ["bug_id"])


def downgrade() -> None:
    op.drop_index("idx_bug_tags_bug_id", table_name="bug_tags")
    op.drop_index("idx_bug_tags_tag", table_name="bug_tags")
    op.drop_table("bug_tags")
    op.drop_index("idx_bugs_created_at", table_name="bugs")
    op.drop_index("idx_bugs_reported_by", table_name="bugs")
    op.drop_index("idx_bugs_status_severity_assigned", table_name="bugs")
    op.drop_table("bugs")
    op.drop_table("users")
