#!/usr/bin/env python3
"""
Rate limiting for the chat API.

Fixed-window request counting per client, stored in Redis when it is
reachable and in process memory otherwise.
"""

import threading
import time
from typing import Dict, Tuple

import redis

from .config import Config
from ..utils.logger import get_logger

logger = get_logger(__name__)

_UNSET = object()


class RateLimiter:
    """Counts requests per client key inside a fixed time window."""

    def __init__(self, max_requests: int = None, window_seconds: int = None, redis_client=_UNSET):
        """
        Initialize the limiter with a Redis connection or fall back to in-memory.

        Args:
            max_requests: Requests allowed per window
            window_seconds: Window length
            redis_client: Explicit client, or None to force in-memory counting
        """
        self.max_requests = max_requests or Config.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds or Config.RATE_LIMIT_WINDOW_SECONDS
        self.memory_counters: Dict[str, Tuple[int, int]] = {}  # key -> (window, count)
        self._memory_window = None
        self._lock = threading.Lock()

        if redis_client is not _UNSET:
            self.redis_client = redis_client
        else:
            try:
                self.redis_client = redis.Redis(
                    host=Config.REDIS_HOST,
                    port=Config.REDIS_PORT,
                    db=Config.REDIS_DB,
                    decode_responses=True,
                    socket_connect_timeout=1,
                    socket_timeout=1,
                )
                # Test Redis connection
                self.redis_client.ping()
                logger.info("Using Redis for rate limiting")
            except redis.RedisError as e:
                logger.info("Redis not available (%s), using in-memory rate limiting", e)
                self.redis_client = None
        self.use_redis = self.redis_client is not None

    def _get_key(self, client_id: str, window: int) -> str:
        return f"ratelimit:{client_id}:{window}"

    def _hit_redis(self, client_id: str, window: int) -> int:
        key = self._get_key(client_id, window)
        pipe = self.redis_client.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds)
        count, _ = pipe.execute()
        return int(count)

    def _hit_memory(self, client_id: str, window: int) -> int:
        with self._lock:
            if window != self._memory_window:
                # new window: counters from earlier windows are dead
                self.memory_counters = {
                    key: entry for key, entry in self.memory_counters.items() if entry[0] >= window
                }
                self._memory_window = window
            current_window, count = self.memory_counters.get(client_id, (window, 0))
            if current_window != window:
                count = 0
            count += 1
            self.memory_counters[client_id] = (window, count)
            return count

    def hit(self, client_id: str) -> bool:
        """
        Record one request.

        Returns:
            True if the request is within the limit
        """
        window = int(time.time() // self.window_seconds)
        if self.use_redis:
            try:
                count = self._hit_redis(client_id, window)
            except redis.RedisError as e:
                logger.warning("Redis rate limiting failed (%s), counting in memory", e)
                count = self._hit_memory(client_id, window)
        else:
            count = self._hit_memory(client_id, window)
        return count <= self.max_requests
