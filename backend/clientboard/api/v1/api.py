from fastapi import APIRouter

from clientboard.api.v1.endpoints import boards, comments, rollups, settings, tasks

api_router = APIRouter()
api_router.include_router(boards.router, prefix="/boards", tags=["boards"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(rollups.router, prefix="/rollups", tags=["rollups"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
