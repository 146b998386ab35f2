import asyncio
import logging
import time
from contextlib import asynccontextmanager

from redis.exceptions import LockNotOwnedError

from db.config import settings
from db.redis_database import REDIS_ASYNC_CLIENT

scheduler_lock_key = "streamline_scheduler_lock"
heartbeat_key = "streamline_scheduler_heartbeat"
heartbeat_timeout = 300  # 5 minutes


async def acquire_scheduler_lock():
    current_time = int(time.time())
    last_heartbeat = await REDIS_ASYNC_CLIENT.get(heartbeat_key)
    if last_heartbeat and (current_time - int(last_heartbeat) <= heartbeat_timeout):
        logging.info("Scheduler is still active, not acquiring lock")
        return False, None

    acquired, lock = await acquire_redis_lock(
        scheduler_lock_key, timeout=heartbeat_timeout, block=False
    )
    if acquired:
        logging.info("Acquired scheduler lock")
        await REDIS_ASYNC_CLIENT.set(heartbeat_key, current_time)
        return True, lock
    logging.info("Failed to acquire scheduler lock")
    return False, None


async def release_scheduler_lock(lock):
    logging.info("Releasing scheduler lock")
    await release_redis_lock(lock)
    await REDIS_ASYNC_CLIENT.delete(heartbeat_key)


async def maintain_heartbeat():
    while True:
        await asyncio.sleep(heartbeat_timeout // 2)
        await REDIS_ASYNC_CLIENT.set(heartbeat_key, int(time.time()))


async def acquire_redis_lock(
    key: str, timeout: int = 60, block: bool = False, blocking_timeout: float = None
):
    lock = REDIS_ASYNC_CLIENT.lock(key, timeout=timeout, blocking_timeout=blocking_timeout)
    acquired = await lock.acquire(blocking=block)
    return acquired, lock


async def release_redis_lock(lock):
    try:
        await lock.release()
    except LockNotOwnedError:
        logging.error("Failed to release lock, lock not owned")


@asynccontextmanager
async def entry_lock(catalog_entry_id: int):
    """
    Serialize activation changes for one catalog entry across workers.

    A no-op unless ``enable_entry_lock`` is set. Raises TimeoutError when the
    lock cannot be taken within ``entry_lock_timeout`` seconds.
    """
    if not settings.enable_entry_lock:
        yield
        return

    acquired, lock = await acquire_redis_lock(
        f"streamline_entry_lock:{catalog_entry_id}",
        timeout=settings.entry_lock_timeout,
        block=True,
        blocking_timeout=settings.entry_lock_timeout,
    )
    if not acquired:
        raise TimeoutError(f"Could not lock catalog entry {catalog_entry_id}")
    try:
        yield
    finally:
        await release_redis_lock(lock)
