"""
Redis client with connection management and fallback logic.
"""

import logging
import redis
from typing import Optional

from .fallback import FileKV

logger = logging.getLogger(__name__)


def get_redis_client(host: str, port: int, db: int, password: Optional[str] = None,
                     fallback_path: Optional[str] = None):
    """
    Get Redis client with fallback to file-backed storage.

    Args:
        host: Redis host
        port: Redis port
        db: Redis database number
        password: Redis password (optional)
        fallback_path: JSON file used by the fallback store (optional)

    Returns:
        Redis client or FileKV fallback
    """
    try:
        client = redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=5,
            retry_on_timeout=True
        )
        # Test connection
        client.ping()
        logger.info(f"Connected to Redis at {host}:{port}/{db}")
        return client
    except redis.exceptions.RedisError as e:
        logger.warning(f"Redis unavailable at {host}:{port} ({e}), using local store {fallback_path or '(memory)'}")
        return FileKV(fallback_path)
