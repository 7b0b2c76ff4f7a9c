"""
IdempotencyCache - Réponses mises en cache par clé x-idempotency-key
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class IdempotencyCache:
    """Cache TTL en mémoire; les clés sont préfixées par la route concernée"""

    def __init__(self, default_ttl: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    @staticmethod
    def scoped_key(scope: str, key: Optional[str]) -> Optional[str]:
        if not key:
            return None
        return f"{scope}:{key}"

    def _cleanup(self) -> None:
        now = self._clock()
        for key in [k for k, (expires, _) in self._entries.items() if expires <= now]:
            del self._entries[key]

    def get(self, key: Optional[str]) -> Optional[Any]:
        if not key:
            return None
        self._cleanup()
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.debug(f"🔁 Idempotent replay for {key}")
        return entry[1]

    def set(self, key: Optional[str], payload: Any, ttl: Optional[float] = None) -> None:
        if not key:
            return
        self._entries[key] = (self._clock() + (ttl if ttl is not None else self.default_ttl), payload)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        self._cleanup()
        return len(self._entries)
