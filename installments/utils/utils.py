# installments/utils/utils.py

from django.core.cache import cache
from functools import wraps
from rest_framework.response import Response
import logging

logger = logging.getLogger(__name__)


def _version_key(prefix):
    return f"api_cache:{prefix}:version"


def invalidate_cached_responses(prefix):
    """
    Drop every response cached under `prefix` by bumping its version.
    """
    try:
        cache.incr(_version_key(prefix))
    except ValueError:
        cache.set(_version_key(prefix), 2, None)


def cache_response(prefix, timeout=300):
    """
    Decorator to cache DRF GET responses (stores only .data to avoid render issues).
    """
    def decorator(func):
        @wraps(func)
        def wrapper(self, request, *args, **kwargs):
            if request.method != "GET":
                return func(self, request, *args, **kwargs)

            version = cache.get(_version_key(prefix), 1)
            cache_key = f"api_cache:{prefix}:{version}:{request.get_full_path()}"
            cached_data = cache.get(cache_key)

            if cached_data is not None:
                return Response(cached_data)

            response = func(self, request, *args, **kwargs)

            # Cache only serializable response data
            if isinstance(response, Response) and response.status_code == 200:
                try:
                    cache.set(cache_key, response.data, timeout)
                except Exception:
                    logger.exception("[CacheError] Failed to cache response for %s", cache_key)

            return response
        return wrapper
    return decorator
