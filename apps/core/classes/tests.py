import json
from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from apps.core.academics.models import AcademicBranch, AcademicProgram, AcademicSession, AcademicSubject, Semester
from apps.core.users.tokens import create_access_token

from .models import ClassTeacherOverride, SchoolClass
from .services import build_academic_class_name, is_teacher_authorized_for_class, teacher_class_ids


class ClassApiTestCase(TestCase):
    def setUp(self):
        self.user_model = get_user_model()
        self.admin = self.user_model.objects.create_user(
            email='admin@example.com',
            password='pass12345',
            name='Admin',
            role='admin',
        )
        self.owner = self.user_model.objects.create_user(
            email='owner@example.com',
            password='pass12345',
            name='Owner Teacher',
            role='teacher',
            teacher_id='TCH0001',
        )
        self.substitute = self.user_model.objects.create_user(
            email='substitute@example.com',
            password='pass12345',
            name='Substitute Teacher',
            role='teacher',
            teacher_id='TCH0002',
        )
        self.student = self.user_model.objects.create_user(
            email='student@example.com',
            password='pass12345',
            name='Student',
            role='student',
        )
        self.school_class = SchoolClass.objects.create(
            class_name='CSE-A Maths',
            subject='Mathematics',
            teacher=self.owner,
        )

    def send(self, method, url, user, data=None):
        kwargs = {'HTTP_AUTHORIZATION': f'Bearer {create_access_token(user)}'}
        if method == 'get':
            return self.client.get(url, data or {}, **kwargs)
        return getattr(self.client, method)(
            url,
            data=json.dumps(data or {}),
            content_type='application/json',
            **kwargs,
        )


class TeacherAuthorizationTests(ClassApiTestCase):
    def setUp(self):
        super().setUp()
        ClassTeacherOverride.objects.create(
            school_class=self.school_class,
            teacher=self.substitute,
            date=date(2024, 3, 11),
            assigned_by=self.admin,
        )

    def test_owner_is_authorized_on_any_date(self):
        self.assertTrue(is_teacher_authorized_for_class(self.owner, self.school_class, date(2024, 3, 10)))
        self.assertTrue(is_teacher_authorized_for_class(self.owner, self.school_class, date(2024, 3, 11)))

    def test_substitute_is_authorized_only_on_override_date(self):
        self.assertFalse(is_teacher_authorized_for_class(self.substitute, self.school_class, date(2024, 3, 10)))
        self.assertTrue(is_teacher_authorized_for_class(self.substitute, self.school_class, '2024-03-11'))

    def test_unparseable_date_denies_substitute(self):
        self.assertFalse(is_teacher_authorized_for_class(self.substitute, self.school_class, 'not-a-date'))

    def test_teacher_class_ids_respects_override_dates(self):
        self.assertEqual(teacher_class_ids(self.substitute, target_date=date(2024, 3, 10)), set())
        self.assertEqual(teacher_class_ids(self.substitute, target_date=date(2024, 3, 11)), {self.school_class.pk})
        self.assertEqual(
            teacher_class_ids(self.substitute, start='2024-03-01', end='2024-03-31'),
            {self.school_class.pk},
        )
        self.assertEqual(teacher_class_ids(self.substitute, include_all_overrides=True), {self.school_class.pk})
        self.assertEqual(teacher_class_ids(self.owner, target_date=date(2024, 3, 10)), {self.school_class.pk})

    def test_my_classes_uses_requested_date(self):
        url = reverse('my_classes')
        on_day = self.send('get', url, self.substitute, {'date': '2024-03-11'}).json()
        other_day = self.send('get', url, self.substitute, {'date': '2024-03-12'}).json()

        self.assertEqual([row['id'] for row in on_day], [self.school_class.pk])
        self.assertEqual(other_day, [])

    def test_my_classes_with_bad_date_lists_only_owned_classes(self):
        ClassTeacherOverride.objects.create(
            school_class=self.school_class,
            teacher=self.substitute,
            date=timezone.localdate(),
        )
        url = reverse('my_classes')
        substitute_view = self.send('get', url, self.substitute, {'date': 'not-a-date'})
        owner_view = self.send('get', url, self.owner, {'date': 'not-a-date'})

        self.assertEqual(substitute_view.status_code, 200)
        self.assertEqual(substitute_view.json(), [])
        self.assertEqual([row['id'] for row in owner_view.json()], [self.school_class.pk])

    def test_students_cannot_list_teacher_classes(self):
        response = self.send('get', reverse('my_classes'), self.student)
        self.assertEqual(response.status_code, 403)


class CreateClassTests(ClassApiTestCase):
    def test_teacher_creates_simple_class_owned_by_self(self):
        semester = Semester.objects.create(name='Spring 2024', start_date='2024-01-08', end_date='2024-05-31')

        response = self.send('post', reverse('class_create'), self.substitute, {
            'className': 'ECE-B Physics',
            'subject': 'Physics',
            'semesterId': semester.pk,
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()['class']
        self.assertEqual(body['teacher']['id'], self.substitute.pk)
        self.assertEqual(body['teacher']['teacherId'], 'TCH0002')
        self.assertEqual(body['semester']['name'], 'Spring 2024')
        self.assertIsNone(body['program'])

    def test_missing_subject_is_rejected(self):
        response = self.send('post', reverse('class_create'), self.owner, {'className': 'Only Name'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Class name and subject are required')

    def test_unknown_semester_is_not_found(self):
        response = self.send('post', reverse('class_create'), self.owner, {
            'className': 'X',
            'subject': 'Y',
            'semesterId': 999,
        })
        self.assertEqual(response.status_code, 404)

    def test_admin_lists_all_classes(self):
        response = self.send('get', reverse('class_list_all'), self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 1)

        denied = self.send('get', reverse('class_list_all'), self.owner)
        self.assertEqual(denied.status_code, 403)


class AllocateClassTests(ClassApiTestCase):
    def setUp(self):
        super().setUp()
        self.program = AcademicProgram.objects.create(name='Bachelor of Technology', code='BTECH')
        self.session = AcademicSession.objects.create(program=self.program, label='2024-28')
        self.branch = AcademicBranch.objects.create(
            program=self.program,
            session=self.session,
            name='Computer Science and Engineering',
            code='CSE',
        )
        self.subject = AcademicSubject.objects.create(
            program=self.program,
            session=self.session,
            branch=self.branch,
            semester=1,
            name='Programming Fundamentals',
        )

    def scope(self, teacher, **overrides):
        data = {
            'teacherId': teacher.pk,
            'programId': self.program.pk,
            'sessionId': self.session.pk,
            'branchId': self.branch.pk,
            'subjectId': self.subject.pk,
            'semester': 1,
            'groupLabel': '2',
        }
        data.update(overrides)
        return data

    def test_scoped_allocation_creates_then_reassigns(self):
        url = reverse('class_allocate')

        created = self.send('post', url, self.admin, self.scope(self.owner))
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['message'], 'Class allocated')
        self.assertEqual(created.json()['class']['className'], 'BTECH | 2024-28 | CSE | Sem 1 | Group 2')
        self.assertEqual(created.json()['class']['subject'], 'Programming Fundamentals')

        same = self.send('post', url, self.admin, self.scope(self.owner))
        self.assertEqual(same.status_code, 200)
        self.assertEqual(same.json()['message'], 'Class scope already assigned to this teacher')
        self.assertFalse(same.json()['reassigned'])

        moved = self.send('post', url, self.admin, self.scope(self.substitute))
        self.assertEqual(moved.json()['message'], 'Teacher updated for selected class scope')
        self.assertTrue(moved.json()['reassigned'])
        self.assertEqual(SchoolClass.objects.filter(program=self.program).count(), 1)
        self.assertEqual(SchoolClass.objects.get(program=self.program).teacher, self.substitute)

    def test_subject_from_other_semester_is_not_found(self):
        response = self.send('post', reverse('class_allocate'), self.admin, self.scope(self.owner, semester=2))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json()['message'],
            'Selected program/session/branch/semester/subject scope not found',
        )

    def test_invalid_group_is_rejected(self):
        response = self.send('post', reverse('class_allocate'), self.admin, self.scope(self.owner, groupLabel='5'))
        self.assertEqual(response.status_code, 400)

    def test_inactive_teacher_is_rejected(self):
        self.owner.is_active = False
        self.owner.save()
        response = self.send('post', reverse('class_allocate'), self.admin, self.scope(self.owner))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Active teacher not found')

    def test_allocation_without_scope_creates_simple_class(self):
        response = self.send('post', reverse('class_allocate'), self.admin, {
            'teacherId': self.substitute.pk,
            'className': 'Lab Batch',
            'subject': 'Workshop',
        })
        self.assertEqual(response.status_code, 201)
        self.assertIsNone(response.json()['class']['program'])

    def test_class_name_builder_prefers_codes(self):
        name = build_academic_class_name(
            program=self.program,
            session=self.session,
            branch=self.branch,
            semester=3,
            group_label='1',
        )
        self.assertEqual(name, 'BTECH | 2024-28 | CSE | Sem 3 | Group 1')


class ChangeTeacherTests(ClassApiTestCase):
    def test_full_semester_change_moves_ownership(self):
        url = reverse('class_change_teacher', args=[self.school_class.pk])
        response = self.send('patch', url, self.admin, {'teacherId': self.substitute.pk, 'mode': 'full_sem'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Teacher changed for full semester')
        self.assertTrue(response.json()['changed'])
        self.school_class.refresh_from_db()
        self.assertEqual(self.school_class.teacher, self.substitute)

        again = self.send('patch', url, self.admin, {'teacherId': self.substitute.pk, 'mode': 'full_sem'})
        self.assertEqual(again.json()['message'], 'Teacher already assigned')
        self.assertFalse(again.json()['changed'])

    def test_one_day_change_creates_single_override(self):
        url = reverse('class_change_teacher', args=[self.school_class.pk])
        data = {'teacherId': self.substitute.pk, 'mode': 'one_day', 'date': '2024-03-11'}

        first = self.send('patch', url, self.admin, data)
        second = self.send('patch', url, self.admin, data)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()['message'], 'Teacher assigned for 2024-03-11')
        self.assertEqual(second.json()['override']['date'], '2024-03-11')
        self.assertEqual(ClassTeacherOverride.objects.count(), 1)
        self.school_class.refresh_from_db()
        self.assertEqual(self.school_class.teacher, self.owner)

    def test_one_day_requires_valid_date(self):
        url = reverse('class_change_teacher', args=[self.school_class.pk])
        response = self.send('patch', url, self.admin, {'teacherId': self.substitute.pk, 'mode': 'one_day'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Valid date is required for one_day mode')

    def test_unknown_mode_is_rejected(self):
        url = reverse('class_change_teacher', args=[self.school_class.pk])
        response = self.send('patch', url, self.admin, {'teacherId': self.substitute.pk, 'mode': 'weekly'})
        self.assertEqual(response.status_code, 400)

    def test_student_cannot_be_assigned(self):
        url = reverse('class_change_teacher', args=[self.school_class.pk])
        response = self.send('patch', url, self.admin, {'teacherId': self.student.pk, 'mode': 'full_sem'})
        self.assertEqual(response.status_code, 404)

    def test_unknown_class_is_not_found(self):
        url = reverse('class_change_teacher', args=[9999])
        response = self.send('patch', url, self.admin, {'teacherId': self.substitute.pk, 'mode': 'full_sem'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Class not found')
