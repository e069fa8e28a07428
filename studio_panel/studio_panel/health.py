"""
Health Check Endpoint for Monitoring
=====================================
Используется системой мониторинга для проверки состояния приложения.
"""
import logging
import time

from django.conf import settings
from django.db import connection, DatabaseError
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint для мониторинга.

    Возвращает:
    - 200 если всё работает
    - 500 если БД недоступна или нет критических настроек
    """
    status = {
        'status': 'healthy',
        'timestamp': time.time(),
        'version': getattr(settings, 'VERSION', '1.0.0'),
        'checks': {}
    }

    # 1. Проверка базы данных
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
        status['checks']['database'] = 'ok'
    except DatabaseError as e:
        logger.error(f"Health check: database unavailable: {e}")
        status['status'] = 'unhealthy'
        status['checks']['database'] = f'error: {str(e)[:100]}'

    # 2. Проверка критических настроек
    missing = [name for name in ('SECRET_KEY', 'DEBUG', 'ALLOWED_HOSTS') if not hasattr(settings, name)]
    if missing:
        status['status'] = 'unhealthy'
        status['checks']['settings'] = f"Missing {', '.join(missing)}"
    else:
        status['checks']['settings'] = 'ok'

    http_status = 200 if status['status'] == 'healthy' else 500
    return JsonResponse(status, status=http_status)


def live_check(request):
    """
    Liveness probe - проверяет что приложение живо.
    """
    return JsonResponse({'alive': True, 'timestamp': time.time()})
