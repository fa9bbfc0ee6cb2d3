"""
推荐结果缓存

按用户保存推荐帖子ID列表，带过期时间
"""

import threading
import time
from typing import Callable, Dict, Hashable, List, Optional, Tuple

from ..utils.config import CACHE_TTL_SECONDS
from ..utils.exceptions import CacheError
from ..utils.logger import logger


class RecommendationCache:
    """线程安全的内存缓存：user_id -> 有序帖子ID列表"""

    def __init__(self, default_ttl: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            default_ttl: 默认过期时间（秒）
            clock: 时间函数，测试时可以替换
        """
        if default_ttl <= 0:
            raise CacheError(f"Cache TTL must be positive, got {default_ttl}")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, List[Hashable]]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def put(self, user_id: Hashable, post_ids: List[Hashable], ttl: Optional[float] = None) -> None:
        """
        保存用户的推荐帖子列表

        Args:
            user_id: 用户ID
            post_ids: 按推荐顺序排列的帖子ID
            ttl: 过期时间（秒），默认使用 default_ttl
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise CacheError(f"Cache TTL must be positive, got {ttl}")
        with self._lock:
            self._entries[user_id] = (self._clock() + ttl, list(post_ids))
        logger.debug(f"Cached {len(post_ids)} posts for user {user_id} (ttl {ttl}s)")

    def put_many(self, entries: Dict[Hashable, List[Hashable]], ttl: Optional[float] = None) -> None:
        """
        一次写入多个用户的推荐列表，要么全部写入，要么都不写

        Raises:
            CacheError: ttl 不合法
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise CacheError(f"Cache TTL must be positive, got {ttl}")
        staged = {user_id: list(post_ids) for user_id, post_ids in entries.items()}
        with self._lock:
            expires_at = self._clock() + ttl
            for user_id, post_ids in staged.items():
                self._entries[user_id] = (expires_at, post_ids)
        logger.debug(f"Cached recommendations for {len(staged)} users (ttl {ttl}s)")

    def get(self, user_id: Hashable) -> Optional[List[Hashable]]:
        """返回未过期的帖子列表，没有或已过期时返回None"""
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is not None and entry[0] <= self._clock():
                del self._entries[user_id]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return list(entry[1])

    def invalidate(self, user_id: Hashable) -> None:
        with self._lock:
            self._entries.pop(user_id, None)

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)
