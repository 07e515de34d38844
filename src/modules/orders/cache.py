"""Order detail cache keys and invalidation.

The cache only speeds up detail reads.  An unreachable backend degrades
to a miss (reads) or a no-op (writes, deletes) with a warning; it never
fails the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.cache import cache

logger = structlog.get_logger(__name__)

DETAIL_KEY_PREFIX = "orders:detail"


def detail_cache_key(order_id: Any) -> str:
    return f"{DETAIL_KEY_PREFIX}:{order_id}"


def get_cached_detail(order_id: Any) -> Optional[Dict[str, Any]]:
    try:
        return cache.get(detail_cache_key(order_id))
    except Exception as exc:
        logger.warning("order.cache_unavailable", op="get", order_id=str(order_id), error=str(exc))
        return None


def store_detail(order_id: Any, data: Dict[str, Any], timeout: int) -> None:
    try:
        cache.set(detail_cache_key(order_id), data, timeout)
    except Exception as exc:
        logger.warning("order.cache_unavailable", op="set", order_id=str(order_id), error=str(exc))


def invalidate_order(order_id: Any) -> None:
    try:
        cache.delete(detail_cache_key(order_id))
    except Exception as exc:
        logger.warning(
            "order.cache_unavailable", op="delete", order_id=str(order_id), error=str(exc)
        )
        return
    logger.debug("order.cache_invalidated", order_id=str(order_id))
