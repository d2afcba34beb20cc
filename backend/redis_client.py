"""
Redis helpers: read caching, guest cart storage and rate limiting.
"""
import json
import logging
import os
import time
from functools import wraps
from typing import Any, Dict, List, Optional, Tuple

import redis
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

MENU_KEY = "menu:all"
CATEGORIES_KEY = "categories:all"
GALLERY_KEY = "gallery:all"
SETTINGS_KEY = "settings:current"

MENU_TTL = 300
CATEGORIES_TTL = 300
GALLERY_TTL = 300
SETTINGS_TTL = 600
GUEST_CART_TTL = 7 * 24 * 3600


class RedisClient:
    """Thin wrapper around redis.Redis that degrades to no-ops when Redis is down"""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None):
        self.redis_host = os.getenv("REDIS_HOST", "redis") if host is None else host
        redis_port_env = os.getenv("REDIS_SERVICE_PORT") or os.getenv("REDIS_PORT") or "6379"
        self.redis_port = port or int(str(redis_port_env).split(":")[-1])
        self.client = None

        if not self.redis_host:
            logger.info("REDIS_HOST is empty, caching disabled")
            return

        try:
            self.client = redis.Redis(
                host=self.redis_host,
                port=self.redis_port,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.client.ping()
        except redis.RedisError as e:
            logger.warning(f"Could not connect to Redis: {e}")
            self.client = None

    def is_available(self) -> bool:
        if not self.client:
            return False
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False

    # ========== Generic JSON cache ==========

    def cache_json(self, key: str, data: Any, ttl: int) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.setex(key, ttl, json.dumps(data, default=str))
            return True
        except redis.RedisError as e:
            logger.error(f"Error caching {key}: {e}")
            return False

    def get_cached_json(self, key: str) -> Optional[Any]:
        if not self.is_available():
            return None
        try:
            cached = self.client.get(key)
            if cached:
                return json.loads(cached)
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Error reading {key} from cache: {e}")
        return None

    def invalidate(self, *keys: str) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.delete(*keys)
            return True
        except redis.RedisError as e:
            logger.error(f"Error invalidating {keys}: {e}")
            return False

    # ========== Menu ==========

    def cache_menu_items(self, items: List[Dict]) -> bool:
        return self.cache_json(MENU_KEY, items, MENU_TTL)

    def get_cached_menu_items(self) -> Optional[List[Dict]]:
        return self.get_cached_json(MENU_KEY)

    def invalidate_menu_cache(self) -> bool:
        return self.invalidate(MENU_KEY)

    # ========== Categories ==========

    def cache_categories(self, categories: List[Dict]) -> bool:
        return self.cache_json(CATEGORIES_KEY, categories, CATEGORIES_TTL)

    def get_cached_categories(self) -> Optional[List[Dict]]:
        return self.get_cached_json(CATEGORIES_KEY)

    def invalidate_categories_cache(self) -> bool:
        return self.invalidate(CATEGORIES_KEY)

    # ========== Gallery ==========

    def cache_gallery(self, images: List[Dict]) -> bool:
        return self.cache_json(GALLERY_KEY, images, GALLERY_TTL)

    def get_cached_gallery(self) -> Optional[List[Dict]]:
        return self.get_cached_json(GALLERY_KEY)

    def invalidate_gallery_cache(self) -> bool:
        return self.invalidate(GALLERY_KEY)

    # ========== Settings ==========

    def cache_settings(self, settings: Dict) -> bool:
        return self.cache_json(SETTINGS_KEY, settings, SETTINGS_TTL)

    def get_cached_settings(self) -> Optional[Dict]:
        return self.get_cached_json(SETTINGS_KEY)

    def invalidate_settings_cache(self) -> bool:
        return self.invalidate(SETTINGS_KEY)

    # ========== Guest carts ==========

    def save_guest_cart(self, session_id: str, lines: List[Dict]) -> bool:
        return self.cache_json(f"cart:{session_id}", lines, GUEST_CART_TTL)

    def load_guest_cart(self, session_id: str) -> Optional[List[Dict]]:
        return self.get_cached_json(f"cart:{session_id}")

    def delete_guest_cart(self, session_id: str) -> bool:
        return self.invalidate(f"cart:{session_id}")

    # ========== Rate limiting ==========

    def check_rate_limit(self, key: str, max_requests: int = 10, window: int = 60) -> Tuple[bool, int]:
        """
        Fixed-window counter.
        Returns (allowed, remaining requests).
        """
        if not self.is_available():
            return True, max_requests

        try:
            current = self.client.incr(key)
            if current == 1:
                self.client.expire(key, window)

            remaining = max(0, max_requests - current)
            return current <= max_requests, remaining
        except redis.RedisError as e:
            logger.error(f"Error checking rate limit: {e}")
            return True, max_requests

    # ========== Utilities ==========

    def clear_all_cache(self) -> bool:
        if not self.is_available():
            return False
        try:
            for pattern in ("menu:*", "categories:*", "gallery:*", "settings:*"):
                keys = self.client.keys(pattern)
                if keys:
                    self.client.delete(*keys)
            return True
        except redis.RedisError as e:
            logger.error(f"Error clearing cache: {e}")
            return False

    def get_cache_info(self) -> Dict[str, Any]:
        if not self.is_available():
            return {"status": "unavailable"}

        try:
            return {
                "status": "available",
                "menu_cached": bool(self.client.exists(MENU_KEY)),
                "categories_cached": bool(self.client.exists(CATEGORIES_KEY)),
                "gallery_cached": bool(self.client.exists(GALLERY_KEY)),
                "settings_cached": bool(self.client.exists(SETTINGS_KEY)),
                "guest_carts_count": len(self.client.keys("cart:*")),
            }
        except redis.RedisError as e:
            return {"status": "error", "error": str(e)}


redis_client = RedisClient()


def rate_limit(max_requests: int = 10, window: int = 60, key_prefix: str = "rate_limit"):
    """
    Rate limit an async FastAPI endpoint per client host.
    The endpoint must take a `request: Request` argument.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")

            if request is not None and request.client is not None:
                rate_key = f"{key_prefix}:{func.__name__}:{request.client.host}"
            else:
                rate_key = f"{key_prefix}:{func.__name__}:global"

            allowed, remaining = redis_client.check_rate_limit(rate_key, max_requests, window)
            if not allowed:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=f"Rate limit exceeded. Try again in {window} seconds."
                )

            response = await func(*args, **kwargs)
            if hasattr(response, "headers"):
                response.headers["X-RateLimit-Limit"] = str(max_requests)
                response.headers["X-RateLimit-Remaining"] = str(remaining)
                response.headers["X-RateLimit-Reset"] = str(int(time.time()) + window)
            return response
        return wrapper
    return decorator
