# Dramatiq worker entry point: `dramatiq api.task`
import asyncio
import logging

from db import database
from db.config import settings

# import background actors
from ingestion import tasks  # noqa: F401

logging.basicConfig(
    format="%(levelname)s::%(asctime)s::%(pathname)s::%(lineno)d - %(message)s",
    datefmt="%d-%b-%y %H:%M:%S",
    level=settings.logging_level,
)
logging.getLogger("httpx").setLevel(logging.WARNING)


async def async_setup():
    await database.init()


asyncio.run(async_setup())
