"""
Shared test utilities and factories.

Re-exports all factory functions for convenient imports:
    from clientboard.testing import create_user, create_board, get_auth_headers
"""

from clientboard.testing.factories import (
    create_attachment,
    create_board,
    create_board_access,
    create_client,
    create_comment,
    create_invitation,
    create_rollup,
    create_task,
    create_task_view,
    create_team,
    create_user,
    get_auth_headers,
    get_auth_token,
)

__all__ = [
    "create_attachment",
    "create_board",
    "create_board_access",
    "create_client",
    "create_comment",
    "create_invitation",
    "create_rollup",
    "create_task",
    "create_task_view",
    "create_team",
    "create_user",
    "get_auth_headers",
    "get_auth_token",
]
