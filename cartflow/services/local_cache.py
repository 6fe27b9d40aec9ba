# cartflow/services/local_cache.py
import json

import redis
from redis.exceptions import RedisError

from cartflow.domain.entities import CartItem, Identity
from cartflow.domain.results import WriteResult
from cartflow.utils.retry import redis_retry
from cartflow.utils.settings import REDIS_URL, CART_CACHE_TTL_SECONDS
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class LocalCartCache:
    """
    Per-identity cart snapshot kept in redis under "cart:<buyer-id>" or
    "cart:guest:<session-id>". Reads fall back to an empty cart, writes report a
    WriteResult instead of raising.
    """

    def __init__(self, client=None, ttl: int = CART_CACHE_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @redis_retry()
    def _get(self, key: str) -> str | None:
        return self.redis.get(key)

    @redis_retry()
    def _set(self, key: str, value: str) -> None:
        self.redis.set(key, value, ex=self.ttl)

    def load(self, identity: Identity) -> list[CartItem]:
        key = identity.cache_key
        try:
            raw = self._get(key)
        except RedisError as e:
            logger.warning(f"Local cart cache read failed for {key}: {e}")
            return []

        if not raw:
            return []

        try:
            return [CartItem.model_validate(row) for row in json.loads(raw)]
        except (ValueError, TypeError) as e:
            #corrupted entry, start over with an empty cart
            logger.warning(f"Discarding unreadable cart cache {key}: {e}")
            return []

    def save(self, identity: Identity, items: list[CartItem]) -> WriteResult:
        key = identity.cache_key
        payload = json.dumps([i.model_dump(mode="json") for i in items])
        try:
            self._set(key, payload)
        except RedisError as e:
            logger.warning(f"Local cart cache write failed for {key}: {e}")
            return WriteResult.failed("cache_save", str(e))
        return WriteResult.ok("cache_save")
