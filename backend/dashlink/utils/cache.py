"""内存缓存（限流计数器）"""
from cachetools import TLRUCache
from typing import Callable, NamedTuple
import hashlib
import time

from ..config import settings


class Counter(NamedTuple):
    """计数器，过期时间在首次创建时确定"""
    count: int
    expires_at: float


def _counter_ttu(_key, value: Counter, _now: float) -> float:
    return value.expires_at


def create_counter_cache(maxsize: int = None, timer: Callable[[], float] = time.monotonic) -> TLRUCache:
    """创建按条目过期的计数缓存

    与 TTLCache 不同，每个计数器可以有自己的窗口长度。
    """
    return TLRUCache(
        maxsize=maxsize or settings.CACHE_MAX_SIZE,
        ttu=_counter_ttu,
        timer=timer,
    )


def hash_identifier(identifier: str) -> str:
    """用户 ID / IP 不以明文出现在缓存键中"""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()


# 全局缓存实例
counter_cache = create_counter_cache()
