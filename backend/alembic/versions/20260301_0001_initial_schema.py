"""Initial clientboard schema.

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 00:00:00.000000
"""

import json
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20260301_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


DEFAULT_STATUS_OPTIONS = [
    {"id": "todo", "label": "To Do", "color": "#6B7280", "position": 0},
    {"id": "in-progress", "label": "In Progress", "color": "#3B82F6", "position": 1},
    {"id": "review", "label": "Review", "color": "#F59E0B", "position": 2},
    {"id": "complete", "label": "Complete", "color": "#10B981", "position": 3},
]

user_role = sa.Enum("admin", "user", name="user_role")
board_type = sa.Enum("standard", "rollup", "personal", name="board_type")
access_level = sa.Enum("full", "assigned_only", name="access_level")
date_flexibility = sa.Enum("not_set", "flexible", "semi_flexible", "not_flexible", name="date_flexibility")
invitation_status = sa.Enum("pending", "accepted", "declined", name="rollup_invitation_status")


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="user"),
        _timestamp("deactivated_at", nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("exclude_from_public", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_teams_name"), "teams", ["name"], unique=False)

    op.create_table(
        "team_members",
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _timestamp("joined_at"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("team_id", "user_id"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("icon", sa.String(), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(op.f("ix_clients_slug"), "clients", ["slug"], unique=False)

    op.create_table(
        "boards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", board_type, nullable=False, server_default="standard"),
        sa.Column("status_options", sa.JSON(), nullable=False, server_default=json.dumps(DEFAULT_STATUS_OPTIONS)),
        sa.Column("section_options", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("review_mode_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_boards_client_id"), "boards", ["client_id"], unique=False)

    op.create_table(
        "board_access",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("board_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("access_level", access_level, nullable=False, server_default="full"),
        _timestamp("created_at"),
        sa.CheckConstraint("(user_id IS NULL) <> (team_id IS NULL)", name="ck_board_access_user_or_team"),
        sa.ForeignKeyConstraint(["board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_board_access_board_id"), "board_access", ["board_id"], unique=False)
    op.create_index(op.f("ix_board_access_user_id"), "board_access", ["user_id"], unique=False)
    op.create_index(op.f("ix_board_access_team_id"), "board_access", ["team_id"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("board_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=100), nullable=False),
        sa.Column("section", sa.String(length=100), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("date_flexibility", date_flexibility, nullable=False, server_default="not_set"),
        sa.Column("recurring_config", sa.JSON(), nullable=True),
        sa.Column("recurring_group_id", sa.Integer(), nullable=True),
        sa.Column("parent_task_id", sa.Integer(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("archived_at", nullable=True),
        sa.ForeignKeyConstraint(["board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tasks_board_id"), "tasks", ["board_id"], unique=False)
    op.create_index(op.f("ix_tasks_parent_task_id"), "tasks", ["parent_task_id"], unique=False)
    op.create_index(op.f("ix_tasks_recurring_group_id"), "tasks", ["recurring_group_id"], unique=False)

    op.create_table(
        "task_assignees",
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("task_id", "user_id"),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at", nullable=True),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_comments_task_id"), "comments", ["task_id"], unique=False)

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("uploaded_by_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["uploaded_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attachments_task_id"), "attachments", ["task_id"], unique=False)

    op.create_table(
        "task_views",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _timestamp("viewed_at"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_views_task_user"),
    )
    op.create_index(op.f("ix_task_views_user_id"), "task_views", ["user_id"], unique=False)

    op.create_table(
        "board_activity_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("board_id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("task_title", sa.String(length=500), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_board_activity_log_board_created",
        "board_activity_log",
        ["board_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "rollup_sources",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("rollup_board_id", sa.Integer(), nullable=False),
        sa.Column("source_board_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["rollup_board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("rollup_board_id", "source_board_id", name="uq_rollup_sources_rollup_source"),
    )
    op.create_index(op.f("ix_rollup_sources_rollup_board_id"), "rollup_sources", ["rollup_board_id"], unique=False)
    op.create_index(op.f("ix_rollup_sources_source_board_id"), "rollup_sources", ["source_board_id"], unique=False)

    op.create_table(
        "rollup_owners",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("rollup_board_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["rollup_board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("rollup_board_id", "user_id", name="uq_rollup_owners_rollup_user"),
    )
    op.create_index(op.f("ix_rollup_owners_rollup_board_id"), "rollup_owners", ["rollup_board_id"], unique=False)
    op.create_index(op.f("ix_rollup_owners_user_id"), "rollup_owners", ["user_id"], unique=False)

    op.create_table(
        "rollup_invitations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("rollup_board_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("all_users", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("status", invitation_status, nullable=False, server_default="pending"),
        sa.Column("invited_by_id", sa.Integer(), nullable=False),
        _timestamp("responded_at", nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "(CASE WHEN user_id IS NOT NULL THEN 1 ELSE 0 END)"
            " + (CASE WHEN team_id IS NOT NULL THEN 1 ELSE 0 END)"
            " + (CASE WHEN all_users THEN 1 ELSE 0 END) = 1",
            name="ck_rollup_invitations_single_target",
        ),
        sa.ForeignKeyConstraint(["rollup_board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_rollup_invitations_rollup_board_id"), "rollup_invitations", ["rollup_board_id"], unique=False
    )
    op.create_index(op.f("ix_rollup_invitations_user_id"), "rollup_invitations", ["user_id"], unique=False)
    op.create_index(op.f("ix_rollup_invitations_team_id"), "rollup_invitations", ["team_id"], unique=False)

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    for table in (
        "app_settings",
        "rollup_invitations",
        "rollup_owners",
        "rollup_sources",
        "board_activity_log",
        "task_views",
        "attachments",
        "comments",
        "task_assignees",
        "tasks",
        "board_access",
        "boards",
        "clients",
        "team_members",
        "teams",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (invitation_status, date_flexibility, access_level, board_type, user_role):
        enum.drop(bind, checkfirst=True)
