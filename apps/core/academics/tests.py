import json

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse

from apps.core.users.tokens import create_access_token

from . import services
from .models import AcademicBranch, AcademicProgram, AcademicSession, AcademicSubject, Semester


class AcademicApiTestCase(TestCase):
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
        )

        self.program = AcademicProgram.objects.create(name='Bachelor of Technology', code='BTECH')
        self.session = AcademicSession.objects.create(program=self.program, label='2024-28')
        self.branch = AcademicBranch.objects.create(
            program=self.program,
            session=self.session,
            name='Computer Science and Engineering',
            code='CSE',
        )

    def send(self, method, url, user=None, data=None):
        user = user or self.admin
        kwargs = {'HTTP_AUTHORIZATION': f'Bearer {create_access_token(user)}'}
        if method == 'get':
            return self.client.get(url, data or {}, **kwargs)
        return getattr(self.client, method)(
            url,
            data=json.dumps(data or {}),
            content_type='application/json',
            **kwargs,
        )


class ProgramTests(AcademicApiTestCase):
    def test_admin_creates_program_with_uppercase_code(self):
        response = self.send('post', reverse('academic_programs'), data={
            'name': '  Master of Computer Applications ',
            'code': 'mca',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['name'], 'Master of Computer Applications')
        self.assertEqual(response.json()['code'], 'MCA')
        self.assertTrue(response.json()['isActive'])

    def test_duplicate_name_is_case_insensitive_conflict(self):
        response = self.send('post', reverse('academic_programs'), data={'name': 'bachelor of technology'})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], 'Program already exists')

    def test_inactive_program_name_can_be_reused(self):
        services.deactivate_program(self.program)
        response = self.send('post', reverse('academic_programs'), data={'name': 'Bachelor of Technology'})
        self.assertEqual(response.status_code, 201)

    def test_missing_name_is_bad_request(self):
        response = self.send('post', reverse('academic_programs'), data={'code': 'X'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Program name is required')

    def test_teacher_is_denied(self):
        response = self.send('get', reverse('academic_programs'), user=self.teacher)
        self.assertEqual(response.status_code, 403)

    def test_update_keeps_unsent_fields(self):
        url = reverse('academic_program_detail', args=[self.program.pk])
        response = self.send('patch', url, data={'description': 'Four years'})

        self.assertEqual(response.status_code, 200)
        self.program.refresh_from_db()
        self.assertEqual(self.program.name, 'Bachelor of Technology')
        self.assertEqual(self.program.code, 'BTECH')
        self.assertEqual(self.program.description, 'Four years')

    def test_unknown_program_is_not_found(self):
        response = self.send('patch', reverse('academic_program_detail', args=[9999]), data={'name': 'X'})
        self.assertEqual(response.status_code, 404)

    def test_list_hides_inactive_unless_requested(self):
        AcademicProgram.objects.create(name='Old Program', is_active=False)

        default = self.send('get', reverse('academic_programs')).json()
        everything = self.send('get', reverse('academic_programs'), data={'includeInactive': 'true'}).json()

        self.assertEqual([row['name'] for row in default], ['Bachelor of Technology'])
        self.assertEqual(len(everything), 2)


class CascadeDeactivationTests(AcademicApiTestCase):
    def setUp(self):
        super().setUp()
        self.subject = AcademicSubject.objects.create(
            program=self.program,
            session=self.session,
            branch=self.branch,
            semester=1,
            name='Data Structures',
        )

    def test_deleting_program_deactivates_descendants(self):
        response = self.send('delete', reverse('academic_program_detail', args=[self.program.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Program deactivated')
        for instance in (self.program, self.session, self.branch, self.subject):
            instance.refresh_from_db()
            self.assertFalse(instance.is_active)

        summary = self.send('get', reverse('academic_summary')).json()
        self.assertEqual(summary, {
            'totalPrograms': 0,
            'totalSessions': 0,
            'totalBranches': 0,
            'totalSubjects': 0,
        })

        program_filter = {'programId': self.program.pk}
        self.assertEqual(self.send('get', reverse('academic_sessions'), data=program_filter).json(), [])
        self.assertEqual(self.send('get', reverse('academic_branches'), data=program_filter).json(), [])
        subjects = self.send('get', reverse('academic_subjects'), data={'branchId': self.branch.pk, 'semester': 1})
        self.assertEqual(subjects.json(), [])

        with_inactive = self.send('get', reverse('academic_sessions'), data={
            'programId': self.program.pk,
            'includeInactive': 'true',
        })
        self.assertEqual([row['id'] for row in with_inactive.json()], [self.session.pk])

    def test_deleting_session_keeps_program_active(self):
        self.send('delete', reverse('academic_session_detail', args=[self.session.pk]))

        self.program.refresh_from_db()
        self.branch.refresh_from_db()
        self.subject.refresh_from_db()
        self.assertTrue(self.program.is_active)
        self.assertFalse(self.branch.is_active)
        self.assertFalse(self.subject.is_active)

    def test_deleting_branch_deactivates_subjects_only(self):
        self.send('delete', reverse('academic_branch_detail', args=[self.branch.pk]))

        self.session.refresh_from_db()
        self.subject.refresh_from_db()
        self.assertTrue(self.session.is_active)
        self.assertFalse(self.subject.is_active)


class SessionAndBranchTests(AcademicApiTestCase):
    def test_session_requires_active_program(self):
        self.program.is_active = False
        self.program.save()

        response = self.send('post', reverse('academic_sessions'), data={
            'programId': self.program.pk,
            'label': '2025-29',
        })
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Active program not found')

    def test_duplicate_session_label_conflicts(self):
        response = self.send('post', reverse('academic_sessions'), data={
            'programId': self.program.pk,
            'label': '2024-28',
        })
        self.assertEqual(response.status_code, 409)

    def test_sessions_filtered_by_program(self):
        other = AcademicProgram.objects.create(name='Diploma')
        AcademicSession.objects.create(program=other, label='2024-27')

        response = self.send('get', reverse('academic_sessions'), data={'programId': self.program.pk})
        self.assertEqual([row['label'] for row in response.json()], ['2024-28'])

    def test_branch_session_must_belong_to_program(self):
        other = AcademicProgram.objects.create(name='Diploma')
        foreign_session = AcademicSession.objects.create(program=other, label='2024-27')

        response = self.send('post', reverse('academic_branches'), data={
            'programId': self.program.pk,
            'sessionId': foreign_session.pk,
            'name': 'ECE',
        })
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Active session not found for program')

    def test_branch_duplicate_conflicts(self):
        response = self.send('post', reverse('academic_branches'), data={
            'programId': self.program.pk,
            'sessionId': self.session.pk,
            'name': 'computer science and engineering',
        })
        self.assertEqual(response.status_code, 409)

    def test_invalid_program_id_is_bad_request(self):
        response = self.send('post', reverse('academic_sessions'), data={'programId': 'abc', 'label': 'x'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Invalid program id')


class SubjectTests(AcademicApiTestCase):
    def test_create_and_list_subjects_by_branch_and_semester(self):
        created = self.send('post', reverse('academic_subjects'), data={
            'programId': self.program.pk,
            'sessionId': self.session.pk,
            'branchId': self.branch.pk,
            'semester': 3,
            'name': 'Operating Systems',
            'code': 'cs301',
        })
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['code'], 'CS301')
        self.assertEqual(created.json()['branch']['id'], self.branch.pk)

        listed = self.send('get', reverse('academic_subjects'), data={'branchId': self.branch.pk, 'semester': 3})
        self.assertEqual([row['name'] for row in listed.json()], ['Operating Systems'])

        other_semester = self.send('get', reverse('academic_subjects'), data={'branchId': self.branch.pk, 'semester': 4})
        self.assertEqual(other_semester.json(), [])

    def test_list_requires_branch_and_semester(self):
        response = self.send('get', reverse('academic_subjects'), data={'semester': 1})
        self.assertEqual(response.status_code, 400)

        response = self.send('get', reverse('academic_subjects'), data={'branchId': self.branch.pk})
        self.assertEqual(response.status_code, 400)

    def test_semester_out_of_range_is_rejected(self):
        response = self.send('post', reverse('academic_subjects'), data={
            'programId': self.program.pk,
            'sessionId': self.session.pk,
            'branchId': self.branch.pk,
            'semester': 9,
            'name': 'Too Late',
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Semester must be between 1 and 8')

    def test_same_name_allowed_in_other_semester(self):
        services.create_subject(
            program_id=self.program.pk,
            session_id=self.session.pk,
            branch_id=self.branch.pk,
            semester=1,
            name='Mathematics',
        )
        subject = services.create_subject(
            program_id=self.program.pk,
            session_id=self.session.pk,
            branch_id=self.branch.pk,
            semester=2,
            name='Mathematics',
        )
        self.assertEqual(subject.semester, 2)

    def test_database_rejects_semester_out_of_range(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            AcademicSubject.objects.create(
                program=self.program,
                session=self.session,
                branch=self.branch,
                semester=0,
                name='Broken',
            )


class SemesterTests(AcademicApiTestCase):
    def test_admin_creates_semester(self):
        response = self.send('post', reverse('semesters'), data={
            'name': 'Spring 2024',
            'startDate': '2024-01-08',
            'endDate': '2024-05-31',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['startDate'], '2024-01-08')
        self.assertEqual(Semester.objects.count(), 1)

    def test_end_before_start_is_rejected(self):
        response = self.send('post', reverse('semesters'), data={
            'name': 'Broken',
            'startDate': '2024-05-31',
            'endDate': '2024-01-08',
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'endDate cannot be before startDate')

    def test_teacher_can_list_but_not_create(self):
        Semester.objects.create(name='Spring 2024', start_date='2024-01-08', end_date='2024-05-31')

        listed = self.send('get', reverse('semesters'), user=self.teacher)
        created = self.send('post', reverse('semesters'), user=self.teacher, data={
            'name': 'Fall',
            'startDate': '2024-08-01',
            'endDate': '2024-12-20',
        })

        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()[0]['name'], 'Spring 2024')
        self.assertEqual(created.status_code, 403)
