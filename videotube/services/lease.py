import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from videotube.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Delete the key only if it still holds our token.
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class ToggleLease:
    """
    Short-lived per-key mutual exclusion for relation toggles.

    Acquired with SET NX PX so a crashed holder frees the key after the TTL.
    A lease that cannot be obtained (Redis down, wait exhausted) is not an
    error: callers proceed and rely on the store's unique constraint.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis],
        ttl_ms: Optional[int] = None,
        wait_ms: Optional[int] = None,
        poll_interval: float = 0.02,
    ):
        self.redis = redis_client
        self.ttl_ms = ttl_ms or settings.toggle_lease_ttl_ms
        self.wait_ms = wait_ms if wait_ms is not None else settings.toggle_lease_wait_ms
        self.poll_interval = poll_interval

    @staticmethod
    def key(actor_id: str, target_kind: str, target_id: str) -> str:
        return f"toggle:{target_kind}:{target_id}:{actor_id}"

    async def _acquire(self, key: str, token: str) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_ms / 1000
        while True:
            if await self.redis.set(key, token, nx=True, px=self.ttl_ms):
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    @asynccontextmanager
    async def hold(self, actor_id: str, target_kind: str, target_id: str) -> AsyncIterator[bool]:
        """Yield True while the lease is held, False when running without one."""
        if self.redis is None:
            yield False
            return

        key = self.key(actor_id, target_kind, target_id)
        token = uuid.uuid4().hex
        try:
            acquired = await self._acquire(key, token)
        except RedisError as e:
            logger.warning(f"Toggle lease unavailable for {key}: {e}")
            acquired = False

        if not acquired:
            logger.info(f"Proceeding without toggle lease for {key}")

        try:
            yield acquired
        finally:
            if acquired:
                try:
                    await self.redis.eval(RELEASE_SCRIPT, 1, key, token)
                except RedisError as e:
                    logger.warning(f"Failed to release toggle lease {key}: {e}")
