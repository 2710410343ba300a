"""限流服务"""
import logging

from cachetools import TLRUCache

from ..exceptions import RateLimited
from ..utils.cache import Counter, counter_cache, hash_identifier

logger = logging.getLogger(__name__)

KEY_PREFIX = "dashlink_ratelimit_"


class RateLimiter:
    """按 (动作, 标识) 计数的固定窗口限流

    窗口从第一次计数开始，只会因过期而重置。读后写没有原子性保证，
    适用于防滥用，不适合精确计费。
    """

    def __init__(self, cache: TLRUCache = None):
        self._cache = counter_cache if cache is None else cache

    @staticmethod
    def _key(action: str, identifier: str) -> str:
        return f"{KEY_PREFIX}{action}_{hash_identifier(identifier)}"

    def is_rate_limited(self, action: str, identifier: str, max_attempts: int, window_seconds: int) -> bool:
        """达到上限返回 True（不再计数），否则计数并返回 False"""
        key = self._key(action, identifier)
        counter = self._cache.get(key)

        if counter is not None and counter.count >= max_attempts:
            logger.warning(f"[RateLimit] 触发限流: action={action} attempts={counter.count}")
            return True

        if counter is None:
            counter = Counter(0, self._cache.timer() + window_seconds)
        self._cache[key] = Counter(counter.count + 1, counter.expires_at)
        return False

    def enforce(self, action: str, identifier: str, max_attempts: int, window_seconds: int, message: str = None) -> None:
        if self.is_rate_limited(action, identifier, max_attempts, window_seconds):
            raise RateLimited(message)

    def increment_attempts(self, action: str, identifier: str, window_seconds: int) -> None:
        key = self._key(action, identifier)
        counter = self._cache.get(key)
        if counter is None:
            counter = Counter(0, self._cache.timer() + window_seconds)
        self._cache[key] = Counter(counter.count + 1, counter.expires_at)

    def get_attempts(self, action: str, identifier: str) -> int:
        counter = self._cache.get(self._key(action, identifier))
        return counter.count if counter is not None else 0

    def reset(self, action: str, identifier: str) -> None:
        self._cache.pop(self._key(action, identifier), None)


# 全局限流器
rate_limiter = RateLimiter()
