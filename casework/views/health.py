import structlog
from django.db import DatabaseError, connections
from django.http import JsonResponse

log = structlog.get_logger(__name__)


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        return JsonResponse({'success': True, 'db': bool(row and row[0] == 1)})
    except DatabaseError as e:
        log.warning('healthz.db_unavailable', error=str(e))
        return JsonResponse({'success': False, 'message': str(e), 'code': 'DB_UNAVAILABLE'}, status=503)
