import logging
import socket

import redis.asyncio

from db.config import settings

logger = logging.getLogger(__name__)

socket_keepalive_options = {}
if hasattr(socket, "TCP_KEEPIDLE"):
    socket_keepalive_options[socket.TCP_KEEPIDLE] = 60
if hasattr(socket, "TCP_KEEPINTVL"):
    socket_keepalive_options[socket.TCP_KEEPINTVL] = 30
if hasattr(socket, "TCP_KEEPCNT"):
    socket_keepalive_options[socket.TCP_KEEPCNT] = 3

pool_settings = {
    "max_connections": settings.redis_max_connections,
    "socket_timeout": 10.0,
    "socket_connect_timeout": 5.0,
    "socket_keepalive": True,
    "health_check_interval": 30,
    "retry_on_timeout": True,
}

if socket_keepalive_options:
    pool_settings["socket_keepalive_options"] = socket_keepalive_options


# Used by the scheduler lock and the per-entry job locks.
REDIS_ASYNC_CLIENT = redis.asyncio.Redis(
    connection_pool=redis.asyncio.ConnectionPool.from_url(
        settings.redis_url, **pool_settings
    )
)


async def close():
    await REDIS_ASYNC_CLIENT.aclose()
    logger.info("Redis connections closed.")
