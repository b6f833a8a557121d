"""
Key-value stores for per-document question rotation history
"""
import redis
import json
import logging
from typing import Any, Dict, Optional
from quizforge.config import settings

logger = logging.getLogger(__name__)


class RotationStore:
    """
    Minimal get/set/delete interface used by the rotation selector

    Implementations must never raise: a lost or broken store degrades to
    "no rotation history".
    """

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class InMemoryRotationStore(RotationStore):
    """Process-local store, used in tests and when Redis is not configured"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return json.loads(value) if value is not None else None

    def set(self, key: str, value: Any) -> bool:
        self._data[key] = json.dumps(value)
        return True

    def delete(self, key: str) -> bool:
        self._data.pop(key, None)
        return True


class RedisRotationStore(RotationStore):
    """Redis-backed rotation store"""

    def __init__(self, url: str = None):
        try:
            self.redis_client = redis.from_url(
                url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Rotation history disabled.")
            self.redis_client = None

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from Redis

        Args:
            key: Rotation key

        Returns:
            Decoded value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"Rotation store get error: {str(e)}")
            return None

    def set(self, key: str, value: Any) -> bool:
        if not self.redis_client:
            return False

        try:
            self.redis_client.set(key, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"Rotation store set error: {str(e)}")
            return False

    def delete(self, key: str) -> bool:
        """Delete key from Redis"""
        if not self.redis_client:
            return False

        try:
            self.redis_client.delete(key)
            logger.info(f"Rotation store delete: {key}")
            return True
        except Exception as e:
            logger.error(f"Rotation store delete error: {str(e)}")
            return False


def create_rotation_store() -> RotationStore:
    """Build the store selected by ROTATION_BACKEND"""
    if settings.ROTATION_BACKEND == "memory":
        return InMemoryRotationStore()
    return RedisRotationStore()


# Global instance
rotation_store = create_rotation_store()
