import asyncio
import logging

from clientboard.db.session import AsyncSessionLocal, run_migrations
from clientboard.services import app_settings as app_settings_service

logger = logging.getLogger(__name__)


async def init() -> None:
    await run_migrations()
    async with AsyncSessionLocal() as session:
        await app_settings_service.ensure_defaults(session)
    logger.info("Database initialized")


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init())


if __name__ == "__main__":
    main()
