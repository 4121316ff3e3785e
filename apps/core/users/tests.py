import json
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from apps.core.academics.models import AcademicBranch, AcademicProgram, AcademicSession

from .audit import log_audit_event
from .models import AuditLog, Counter
from .services import generate_teacher_id
from .tokens import create_access_token, decode_access_token


class UserApiTestCase(TestCase):
    def setUp(self):
        self.user_model = get_user_model()
        self.admin = self.user_model.objects.create_user(
            email='admin@example.com',
            password='pass12345',
            name='Admin',
            role='admin',
        )
        self.teacher = self.user_model.objects.create_user(
            email='teacher@example.com',
            password='pass12345',
            name='Teacher',
            role='teacher',
            teacher_id=generate_teacher_id(),
        )
        self.student = self.user_model.objects.create_user(
            email='student@example.com',
            password='pass12345',
            name='Student',
            role='student',
        )

    def auth(self, user):
        return {'HTTP_AUTHORIZATION': f'Bearer {create_access_token(user)}'}

    def send(self, method, url, user=None, data=None):
        headers = self.auth(user) if user else {}
        if method == 'get':
            return self.client.get(url, data or {}, **headers)
        return getattr(self.client, method)(
            url,
            data=json.dumps(data or {}),
            content_type='application/json',
            **headers,
        )


class LoginTests(UserApiTestCase):
    def test_login_returns_token_with_id_and_role(self):
        response = self.send('post', reverse('login'), data={'email': 'Teacher@example.com', 'password': 'pass12345'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Login successful')
        payload = decode_access_token(response.json()['token'])
        self.assertEqual(payload['id'], self.teacher.pk)
        self.assertEqual(payload['role'], 'teacher')

    def test_login_updates_last_login(self):
        self.send('post', reverse('login'), data={'email': 'student@example.com', 'password': 'pass12345'})
        self.student.refresh_from_db()
        self.assertIsNotNone(self.student.last_login)

    def test_wrong_password_is_bad_request(self):
        response = self.send('post', reverse('login'), data={'email': 'student@example.com', 'password': 'nope'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Invalid email or password')

    def test_inactive_user_cannot_login(self):
        self.student.is_active = False
        self.student.save(update_fields=['is_active'])

        response = self.send('post', reverse('login'), data={'email': 'student@example.com', 'password': 'pass12345'})
        self.assertEqual(response.status_code, 403)


class TokenAuthenticationTests(UserApiTestCase):
    def test_missing_token_is_unauthorized(self):
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['message'], 'No token provided')

    def test_expired_token_is_unauthorized(self):
        token = create_access_token(self.student, expires_delta=timedelta(seconds=-5))
        response = self.client.get(reverse('profile'), HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['message'], 'Invalid or expired token')

    def test_query_token_is_accepted(self):
        token = create_access_token(self.student)
        response = self.client.get(reverse('profile'), {'token': token})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['email'], 'student@example.com')

    def test_deactivated_user_token_is_rejected(self):
        headers = self.auth(self.teacher)
        self.teacher.is_active = False
        self.teacher.save(update_fields=['is_active'])

        response = self.client.get(reverse('profile'), **headers)
        self.assertEqual(response.status_code, 401)

    def test_wrong_role_is_forbidden(self):
        response = self.send('get', reverse('teachers'), user=self.teacher)
        self.assertEqual(response.status_code, 403)


class CreateUserTests(UserApiTestCase):
    def test_admin_creates_teacher_with_sequential_teacher_id(self):
        first = self.send('post', reverse('users'), user=self.admin, data={
            'name': 'New Teacher',
            'email': 'new.teacher@example.com',
            'password': 'secret1',
            'role': 'teacher',
            'subject': 'Physics',
        })
        second = self.send('post', reverse('users'), user=self.admin, data={
            'name': 'Other Teacher',
            'email': 'other.teacher@example.com',
            'password': 'secret1',
            'role': 'teacher',
        })

        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()['teacherId'], 'TCH0002')
        self.assertEqual(first.json()['subject'], 'Physics')
        self.assertEqual(second.json()['teacherId'], 'TCH0003')
        self.assertEqual(Counter.objects.get(key='teacher_id').seq, 3)

    def test_teacher_can_create_only_students(self):
        response = self.send('post', reverse('users'), user=self.teacher, data={
            'name': 'X',
            'email': 'x@example.com',
            'password': 'secret1',
            'role': 'teacher',
        })
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], 'Teachers can create only students')

    def test_student_cannot_create_users(self):
        response = self.send('post', reverse('users'), user=self.student, data={
            'name': 'X',
            'email': 'x@example.com',
            'password': 'secret1',
            'role': 'student',
        })
        self.assertEqual(response.status_code, 403)

    def test_duplicate_email_is_rejected(self):
        response = self.send('post', reverse('users'), user=self.admin, data={
            'name': 'Dup',
            'email': 'STUDENT@example.com',
            'password': 'secret1',
            'role': 'student',
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'User already exists')

    def test_student_created_with_academic_scope(self):
        program = AcademicProgram.objects.create(name='Bachelor of Technology', code='BTECH')
        session = AcademicSession.objects.create(program=program, label='2023-27')
        branch = AcademicBranch.objects.create(program=program, session=session, name='CSE', code='CSE')

        response = self.send('post', reverse('users'), user=self.teacher, data={
            'name': 'Scoped',
            'email': 'scoped@example.com',
            'password': 'secret1',
            'role': 'student',
            'programId': program.pk,
            'sessionId': session.pk,
            'branchId': branch.pk,
            'semester': 3,
            'groupLabel': '2',
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['branch'], branch.pk)
        self.assertEqual(body['semester'], 3)
        self.assertEqual(body['groupLabel'], '2')
        self.assertIsNone(body['teacherId'])


class AdminUserManagementTests(UserApiTestCase):
    def test_admin_lists_users_without_passwords(self):
        response = self.send('get', reverse('users'), user=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 3)
        self.assertNotIn('password', response.json()[0])

    def test_teacher_cannot_list_all_users(self):
        response = self.send('get', reverse('users'), user=self.teacher)
        self.assertEqual(response.status_code, 403)

    def test_role_change_to_teacher_mints_id_and_back_clears_subject(self):
        url = reverse('user_change_role', args=[self.student.pk])
        response = self.send('patch', url, user=self.admin, data={'role': 'teacher'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['user']['teacherId'].startswith('TCH'))

        self.student.refresh_from_db()
        self.student.subject = 'Maths'
        self.student.save()

        self.send('patch', url, user=self.admin, data={'role': 'student'})
        self.student.refresh_from_db()
        self.assertEqual(self.student.subject, '')
        self.assertIsNone(self.student.teacher_id)

    def test_invalid_role_is_rejected(self):
        url = reverse('user_change_role', args=[self.student.pk])
        response = self.send('patch', url, user=self.admin, data={'role': 'owner'})
        self.assertEqual(response.status_code, 400)

    def test_unknown_user_is_not_found(self):
        response = self.send('patch', reverse('user_deactivate', args=[9999]), user=self.admin)
        self.assertEqual(response.status_code, 404)

    def test_invalid_user_id_is_bad_request(self):
        response = self.send('patch', reverse('user_deactivate', args=['abc']), user=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_deactivate_and_activate(self):
        self.send('patch', reverse('user_deactivate', args=[self.student.pk]), user=self.admin)
        self.student.refresh_from_db()
        self.assertFalse(self.student.is_active)

        self.send('patch', reverse('user_activate', args=[self.student.pk]), user=self.admin)
        self.student.refresh_from_db()
        self.assertTrue(self.student.is_active)

    def test_admin_cannot_deactivate_self(self):
        response = self.send('patch', reverse('user_deactivate', args=[self.admin.pk]), user=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_reset_password_requires_six_characters(self):
        url = reverse('user_reset_password', args=[self.student.pk])
        short = self.send('patch', url, user=self.admin, data={'newPassword': '123'})
        self.assertEqual(short.status_code, 400)

        ok = self.send('patch', url, user=self.admin, data={'newPassword': 'brandnew'})
        self.assertEqual(ok.status_code, 200)
        self.student.refresh_from_db()
        self.assertTrue(self.student.check_password('brandnew'))

    def test_student_group_assignment(self):
        url = reverse('user_student_group', args=[self.student.pk])
        response = self.send('patch', url, user=self.admin, data={'groupLabel': '3', 'semester': 2})
        self.assertEqual(response.status_code, 200)
        self.student.refresh_from_db()
        self.assertEqual(self.student.group_label, '3')
        self.assertEqual(self.student.semester, 2)

        bad = self.send('patch', url, user=self.admin, data={'groupLabel': '7'})
        self.assertEqual(bad.status_code, 400)

    def test_teachers_and_students_lists_only_active(self):
        self.user_model.objects.create_user(
            email='gone@example.com', password='pass12345', name='Gone', role='student', is_active=False,
        )

        teachers = self.send('get', reverse('teachers'), user=self.admin).json()
        students = self.send('get', reverse('students'), user=self.teacher).json()

        self.assertEqual([row['email'] for row in teachers], ['teacher@example.com'])
        self.assertEqual([row['email'] for row in students], ['student@example.com'])


class AuditLogTests(UserApiTestCase):
    def test_audit_entry_serializes_dates(self):
        log_audit_event(
            action=AuditLog.ACTION_BULK_MARK,
            performed_by=self.teacher,
            details={'date': self.teacher.created_at.date(), 'classId': 4},
        )
        entry = AuditLog.objects.get()
        self.assertEqual(entry.details['classId'], 4)
        self.assertIsInstance(entry.details['date'], str)

    def test_audit_failure_is_swallowed(self):
        with self.assertLogs('apps.core.users.audit', level='ERROR'):
            log_audit_event(action=AuditLog.ACTION_MARK, performed_by=self.teacher, details={'bad': object()})
        self.assertFalse(AuditLog.objects.exists())


@override_settings(CORS_ALLOWED_ORIGINS=['http://localhost:5173'])
class CorsTests(UserApiTestCase):
    def test_preflight_from_allowed_origin(self):
        response = self.client.options(
            reverse('login'),
            HTTP_ORIGIN='http://localhost:5173',
            HTTP_ACCESS_CONTROL_REQUEST_METHOD='POST',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Access-Control-Allow-Origin'], 'http://localhost:5173')
        self.assertIn('authorization', response['Access-Control-Allow-Headers'].lower())
        self.assertIn('origin', response['Vary'].lower())

    def test_unknown_origin_is_not_echoed(self):
        response = self.client.get(reverse('profile'), HTTP_ORIGIN='http://evil.example')
        self.assertNotIn('Access-Control-Allow-Origin', response)

    @override_settings(CORS_ALLOW_ALL_ORIGINS=True, CORS_ALLOWED_ORIGINS=[])
    def test_wildcard_allows_any_origin(self):
        response = self.client.get(reverse('health'), HTTP_ORIGIN='http://anywhere.example')
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')
