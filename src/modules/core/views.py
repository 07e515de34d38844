import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger(__name__)

HEALTH_CACHE_KEY = "orders:health"


def _ping_database() -> None:
    with connections["default"].cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _ping_cache() -> None:
    cache.set(HEALTH_CACHE_KEY, "ok", 10)
    if cache.get(HEALTH_CACHE_KEY) != "ok":
        raise ConnectionError("cache round trip returned a stale value")


def _check_dependency(name: str, check: Callable[[], None]) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        check()
    except Exception as exc:
        logger.error("health.dependency_down", dependency=name, error=str(exc))
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    """Report database and cache reachability; 503 when either is down."""
    services = {
        "database": _check_dependency("database", _ping_database),
        "cache": _check_dependency("cache", _ping_cache),
    }
    healthy = all(s["status"] == "up" for s in services.values())
    state = "healthy" if healthy else "unhealthy"
    logger.info("health.checked", status=state)

    return JsonResponse(
        {"status": state, "timestamp": timezone.now().isoformat(), "services": services},
        status=200 if healthy else 503,
    )
