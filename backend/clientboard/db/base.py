"""Import all models for Alembic or metadata creation."""

from clientboard.models.app_setting import AppSetting
from clientboard.models.attachment import Attachment
from clientboard.models.board import Board, BoardAccess
from clientboard.models.board_activity import BoardActivity
from clientboard.models.client import Client
from clientboard.models.comment import Comment
from clientboard.models.rollup import RollupInvitation, RollupOwner, RollupSource
from clientboard.models.task import Task, TaskAssignee
from clientboard.models.task_view import TaskView
from clientboard.models.team import Team, TeamMember
from clientboard.models.user import User

__all__ = [
    "AppSetting",
    "Attachment",
    "Board",
    "BoardAccess",
    "BoardActivity",
    "Client",
    "Comment",
    "RollupInvitation",
    "RollupOwner",
    "RollupSource",
    "Task",
    "TaskAssignee",
    "TaskView",
    "Team",
    "TeamMember",
    "User",
]
