import logging

from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness for the load balancer: database round trip plus cache write."""
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except DatabaseError as e:
        logger.error("healthz database check failed", exc_info=e)
        return JsonResponse({'ok': False, 'error': str(e)}, status=503)
    cache.set('healthz:ping', 1, 5)
    return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1), 'cache': cache.get('healthz:ping') == 1})
