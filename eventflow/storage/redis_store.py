"""
Record store using Redis as backend.
Each collection is stored as a JSON array under `<prefix>:<name>`.
"""
import json
import logging
from typing import List, Optional
from redis import Redis
from redis.exceptions import RedisError
from .base import Record, RecordStore

logger = logging.getLogger(__name__)


class RedisRecordStore(RecordStore):
    """
    Record store using Redis.

    Keys never expire: collections live until overwritten.
    """

    def __init__(
        self,
        redis_url: str = "",
        key_prefix: str = "eventflow",
        client: Optional[Redis] = None,
    ) -> None:
        """
        Initializes the Redis record store.

        Args:
            redis_url: Redis connection URL (e.g. redis://localhost:6379/0)
            key_prefix: Namespace for collection keys
            client: Ready client to use instead of connecting to redis_url
        """
        self._redis = client if client is not None else Redis.from_url(redis_url, decode_responses=False)
        self._key_prefix = key_prefix

        try:
            self._redis.ping()
            logger.info(f"RedisRecordStore initialized: key_prefix={key_prefix}")
        except RedisError as e:
            logger.error(f"Error connecting to Redis: {e}")
            raise

    def _key(self, name: str) -> str:
        return f"{self._key_prefix}:{name}"

    def read_collection(self, name: str) -> List[Record]:
        key = self._key(name)
        try:
            data = self._redis.get(key)
        except RedisError as e:
            logger.error(f"Error reading collection from Redis: key={key}, error={e}")
            raise
        if not data:
            return []
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)

    def write_collection(self, name: str, records: List[Record]) -> None:
        key = self._key(name)
        data = json.dumps(list(records), ensure_ascii=False).encode("utf-8")
        try:
            self._redis.set(key, data)
            logger.debug(f"Collection saved to Redis: key={key}, records={len(records)}")
        except RedisError as e:
            logger.error(f"Error saving collection to Redis: key={key}, error={e}")
            raise

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False
