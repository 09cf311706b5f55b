"""
Expire every active chat room past its 48 hour window.
Reads expire rooms lazily, so this is housekeeping only.
Run with: python scripts/expire_rooms.py (e.g. from cron every few minutes)
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path so we can import app
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database import async_session_maker
from app.services import chat_room_service

logger = logging.getLogger("expire_rooms")


async def main() -> int:
    async with async_session_maker() as db:
        expired = await chat_room_service.expire_stale_rooms(db)
    logger.info("Expired %d chat rooms", expired)
    return expired


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    asyncio.run(main())
