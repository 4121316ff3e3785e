from django.test import SimpleTestCase, override_settings

from .checks import required_environment_check


class RequiredEnvironmentCheckTests(SimpleTestCase):
    def error_ids(self):
        return [message.id for message in required_environment_check(None)]

    def test_configured_environment_passes(self):
        self.assertEqual(self.error_ids(), [])

    @override_settings(JWT_SECRET='')
    def test_missing_jwt_secret_is_an_error(self):
        messages = required_environment_check(None)

        self.assertEqual([message.id for message in messages], ['attendance.E001'])
        self.assertTrue(messages[0].is_serious())

    @override_settings(JWT_SECRET='', IS_PRODUCTION=False, DEBUG=True)
    def test_missing_jwt_secret_is_an_error_in_development(self):
        self.assertIn('attendance.E001', self.error_ids())

    @override_settings(DB_NAME='', DB_NAME_REQUIRED=True)
    def test_missing_db_name_outside_debug_is_an_error(self):
        self.assertEqual(self.error_ids(), ['attendance.E002'])

    @override_settings(DB_NAME='attendance', DB_NAME_REQUIRED=True)
    def test_db_name_set_passes(self):
        self.assertEqual(self.error_ids(), [])

    @override_settings(IS_PRODUCTION=True, CORS_ALLOW_ALL_ORIGINS=False, CORS_ALLOWED_ORIGINS=[])
    def test_empty_cors_origins_warns_in_production(self):
        self.assertEqual(self.error_ids(), ['attendance.W002'])
