"""
TTL Cache Utilities
In-memory cache shared by all requests of one process (tokens, store config)
"""
from typing import Dict, Optional, Any
import logging
import time

logger = logging.getLogger(__name__)

class TTLCache:
    """
    In-memory cache with per-entry TTL
    Entries expire after ttl_seconds unless a shorter ttl is given on set()
    """

    def __init__(self, max_size: int = 100, ttl_seconds: int = 3600):
        self.cache: Dict[str, Dict[str, Any]] = {}
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired"""
        if key not in self.cache:
            return None

        entry = self.cache[key]
        if time.time() >= entry["expires_at"]:
            del self.cache[key]
            return None

        return entry["value"]

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Set cached value, optionally overriding the default TTL"""
        self._clean_expired()

        # Remove entries closest to expiry if cache is full
        while len(self.cache) >= self.max_size:
            oldest_key = min(self.cache.keys(), key=lambda k: self.cache[k]["expires_at"])
            del self.cache[oldest_key]

        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self.cache[key] = {
            "value": value,
            "expires_at": time.time() + ttl
        }

    def delete(self, key: str) -> None:
        """Drop a single entry"""
        self.cache.pop(key, None)

    def _clean_expired(self) -> None:
        """Remove expired entries"""
        current_time = time.time()
        expired_keys = [
            key for key, entry in self.cache.items()
            if current_time >= entry["expires_at"]
        ]
        for key in expired_keys:
            del self.cache[key]

    def clear(self) -> None:
        """Clear cache"""
        self.cache.clear()

    def get_stats(self) -> Dict[str, int]:
        """Get cache statistics"""
        self._clean_expired()
        return {
            "size": len(self.cache),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds
        }
