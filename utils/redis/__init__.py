from .client import get_redis_client
from .fallback import FileKV

__all__ = ['get_redis_client', 'FileKV']
