"""
Тесты общей инфраструктуры: формат ошибок API, фильтр Sentry, health.
"""
from unittest import mock

from django.core.exceptions import ValidationError
from django.db.models import ProtectedError
from django.http import Http404
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.exceptions import ValidationError as DRFValidationError

from .exceptions import api_exception_handler
from .sentry_config import FILTERED, before_send_callback, init_sentry


class ApiExceptionHandlerTests(SimpleTestCase):

    def handle(self, exc):
        return api_exception_handler(exc, {'view': None})

    def test_django_validation_error_is_400(self):
        response = self.handle(ValidationError('from must not be after to'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'from must not be after to'})

    def test_protected_error_is_409(self):
        response = self.handle(ProtectedError('protected', set()))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_drf_errors_keep_status_with_single_message(self):
        response = self.handle(NotFound('Group not found'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Group not found'})

        response = self.handle(PermissionDenied('nope'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_field_errors_flattened_to_first_message(self):
        response = self.handle(DRFValidationError({'teacherId': ['Teacher is required'], 'date': ['Date is required']}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'Teacher is required'})

    def test_unhandled_error_is_500_without_details(self):
        with self.assertLogs('studio_panel.exceptions', level='ERROR'):
            response = self.handle(RuntimeError('db password leaked'))
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Internal server error'})


class SentryFilterTests(SimpleTestCase):

    def test_not_found_is_dropped(self):
        for exc in (Http404(), NotFound()):
            with self.subTest(exc=exc.__class__.__name__):
                self.assertIsNone(before_send_callback({}, {'exc_info': (type(exc), exc, None)}))

    def test_sensitive_data_masked(self):
        event = {
            'request': {
                'data': {'username': 'maria', 'password': 'secret123', 'refresh': 'jwt'},
                'headers': {'Authorization': 'Bearer abc', 'Accept': 'application/json'},
            }
        }
        result = before_send_callback(event, {})
        self.assertEqual(result['request']['data']['password'], FILTERED)
        self.assertEqual(result['request']['data']['refresh'], FILTERED)
        self.assertEqual(result['request']['data']['username'], 'maria')
        self.assertEqual(result['request']['headers']['Authorization'], FILTERED)
        self.assertEqual(result['request']['headers']['Accept'], 'application/json')

    @mock.patch.dict('os.environ', {'SENTRY_DSN': ''})
    def test_init_without_dsn_is_noop(self):
        with mock.patch('studio_panel.sentry_config.sentry_sdk.init') as sentry_init:
            self.assertFalse(init_sentry())
        sentry_init.assert_not_called()


class HealthCheckTests(TestCase):

    def test_health(self):
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'healthy')
        self.assertEqual(data['checks']['database'], 'ok')

    def test_live(self):
        response = self.client.get('/api/health/live/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['alive'])
