"""User-facing messages returned in ActionResult errors.

Access-denied messages read the same whether the target is
missing or forbidden.
"""


class AuthMessages:
    NOT_AUTHENTICATED = "Not authenticated"
    ADMIN_REQUIRED = "Admin access required"


class BoardMessages:
    NO_ACCESS = "Board not found or access denied"
    ACCESS_ENTRY_NOT_FOUND = "Access entry not found"
    ACCESS_ENTRY_PRINCIPAL = "Access entry must reference exactly one of user or team"
    ACCESS_ENTRY_EXISTS = "Access entry already exists for this principal"
    PRINCIPAL_NOT_FOUND = "User or team not found"
    LIST_FAILED = "Failed to list boards"
    GET_FAILED = "Failed to get board"
    UPDATE_FAILED = "Failed to update board access"


class TaskMessages:
    NO_ACCESS = "Task not found or access denied"
    PARENT_NO_ACCESS = "Parent task not found or access denied"
    NESTED_SUBTASK = "Subtasks cannot have subtasks"
    PARENT_OTHER_BOARD = "Parent task must be on the same board"
    SUBTASK_RECURRING = "Subtasks cannot have recurring configuration"
    ASSIGN_SELF_REQUIRED = "You can only create tasks assigned to yourself on this board"
    ARCHIVE_REQUIRES_COMPLETE = "Only completed tasks can be archived"
    UNKNOWN_ASSIGNEES = "One or more assignees not found"
    INVALID_FILTERS = "Invalid task filters"
    LIST_FAILED = "Failed to list tasks"
    GET_FAILED = "Failed to get task"
    CREATE_FAILED = "Failed to create task"
    UPDATE_FAILED = "Failed to update task"
    DELETE_FAILED = "Failed to delete task"
    ASSIGNABLE_USERS_FAILED = "Failed to list assignable users"
    ARCHIVED_LIST_FAILED = "Failed to list archived tasks"


class RollupMessages:
    NO_ACCESS = "Rollup not found or access denied"
    SOURCE_ACCESS_DENIED = "You do not have access to all source boards"
    SOURCE_SELECTION_DENIED = "You do not have access to all selected source boards"
    INVALID_SOURCES = "One or more source boards not found or are not standard boards"
    PERMISSION_DENIED = "Only the creator or an admin can change this rollup"
    LIST_FAILED = "Failed to list rollup boards"
    GET_FAILED = "Failed to get rollup board"
    TASKS_FAILED = "Failed to get rollup tasks"
    SOURCES_FAILED = "Failed to list available source boards"
    ACCESS_CHECK_FAILED = "Failed to check rollup access"
    SAVE_FAILED = "Failed to save rollup board"
    DELETE_FAILED = "Failed to delete rollup board"


class RollupSharingMessages:
    OWNER_OR_ADMIN_REQUIRED = "Only owners or admins can manage invitations"
    PRIMARY_OWNER_REQUIRED = "Only the primary owner or admin can transfer ownership"
    USER_NOT_FOUND = "User not found"
    TEAM_NOT_FOUND = "Team not found"
    USER_ALREADY_INVITED = "User already invited"
    TEAM_ALREADY_INVITED = "Team already invited"
    ALL_USERS_ALREADY_INVITED = "All users already invited"
    INVITATION_NOT_FOUND = "Invitation not found"
    ALREADY_RESPONDED = "Invitation already responded to"
    SHARING_FAILED = "Failed to update rollup sharing"


class CommentMessages:
    EMPTY = "Comment cannot be empty"
    LIST_FAILED = "Failed to list comments"
    CREATE_FAILED = "Failed to create comment"


class SettingsMessages:
    INVALID_TIMEZONE = "Unknown timezone"
    UPDATE_FAILED = "Failed to update settings"


class ActivityMessages:
    LIST_FAILED = "Failed to list board activity"
