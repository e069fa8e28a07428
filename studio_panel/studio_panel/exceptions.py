"""
Единый формат ошибок API: {'error': '<сообщение>'}.

- django ValidationError → 400
- ProtectedError (удаление объекта, на который ссылаются) → 409
- DRF исключения (NotFound, PermissionDenied, ...) → их статус
- всё остальное → 500 без подробностей, с логированием
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Первое человекочитаемое сообщение из detail DRF (str / list / dict)"""
    if isinstance(detail, dict):
        if 'detail' in detail:
            return _first_message(detail['detail'])
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, DjangoValidationError):
        message = exc.messages[0] if exc.messages else 'Invalid request'
        return Response({'error': message}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, ProtectedError):
        logger.warning(f"Delete refused: {exc.args[0] if exc.args else exc}")
        return Response(
            {'error': 'Object is referenced by other records and cannot be deleted'},
            status=status.HTTP_409_CONFLICT,
        )

    response = exception_handler(exc, context)
    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled API error in {view.__class__.__name__ if view else 'unknown view'}")
        return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    response.data = {'error': _first_message(response.data)}
    return response
