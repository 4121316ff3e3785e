import json
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from apps.core.academics.models import AcademicProgram
from apps.core.classes.models import ClassTeacherOverride, SchoolClass
from apps.core.users.models import AuditLog
from apps.core.users.tokens import create_access_token

from . import services
from .models import Attendance
from .realtime import BroadcastHub, event_stream, format_sse, get_hub
from .services import attendance_percentage, refresh_student_flags
from .signals import ATTENDANCE_CHANGED_EVENT


class AttendanceBaseTestCase(TestCase):
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
            name='Class Teacher',
            role='teacher',
            teacher_id='TCH0001',
        )
        self.other_teacher = self.user_model.objects.create_user(
            email='other.teacher@example.com',
            password='pass12345',
            name='Other Teacher',
            role='teacher',
            teacher_id='TCH0002',
        )
        self.student = self.user_model.objects.create_user(
            email='student@example.com',
            password='pass12345',
            name='Asha',
            role='student',
        )
        self.school_class = SchoolClass.objects.create(
            class_name='CSE-A Maths',
            subject='Mathematics',
            teacher=self.teacher,
        )
        self.today = timezone.localdate()

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

    def make_student(self, index, **extra):
        return self.user_model.objects.create_user(
            email=f'student{index:02d}@example.com',
            password='pass12345',
            name=f'Student {index:02d}',
            role='student',
            **extra,
        )

    def record(self, student, day, status=Attendance.STATUS_PRESENT, school_class=None):
        return Attendance.objects.create(
            student=student,
            school_class=school_class or self.school_class,
            date=day,
            status=status,
            marked_by=self.teacher,
            updated_by=self.teacher,
        )


class PercentageTests(TestCase):
    def test_zero_total_is_zero_percent(self):
        self.assertEqual(attendance_percentage(0, 0), Decimal('0'))

    def test_rounds_half_up_to_two_places(self):
        self.assertEqual(attendance_percentage(1, 3), Decimal('33.33'))
        self.assertEqual(attendance_percentage(2, 3), Decimal('66.67'))
        self.assertEqual(attendance_percentage(25, 30), Decimal('83.33'))
        self.assertEqual(attendance_percentage(1, 8), Decimal('12.50'))


class MarkAttendanceTests(AttendanceBaseTestCase):
    def mark(self, user=None, **overrides):
        data = {
            'studentId': self.student.pk,
            'classId': self.school_class.pk,
            'date': '2024-03-11',
            'status': 'Present',
        }
        data.update(overrides)
        return self.send('post', reverse('attendance_root'), user or self.teacher, data)

    def test_teacher_marks_attendance(self):
        response = self.mark()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['status'], 'Present')
        self.assertEqual(body['date'], '2024-03-11')
        self.assertEqual(body['student']['id'], self.student.pk)
        self.assertFalse(body['isLowAttendance'])
        self.assertEqual(body['markedBy'], self.teacher.pk)

    def test_class_can_be_referenced_by_exact_name(self):
        response = self.mark(classId='CSE-A Maths')
        self.assertEqual(response.status_code, 201)

    def test_unknown_class_is_not_found(self):
        response = self.mark(classId='Nope')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Class not found (use valid Class ID or exact class name)')

    def test_duplicate_mark_conflicts(self):
        self.mark()
        response = self.mark(status='Absent')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], 'Attendance already marked for this student/class/date')
        self.assertEqual(Attendance.objects.count(), 1)

    def test_other_teacher_needs_override_for_the_date(self):
        denied = self.mark(user=self.other_teacher)
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()['message'], 'Not authorized for this class on selected date')

        ClassTeacherOverride.objects.create(
            school_class=self.school_class,
            teacher=self.other_teacher,
            date=date(2024, 3, 11),
        )
        allowed = self.mark(user=self.other_teacher)
        self.assertEqual(allowed.status_code, 201)

    def test_admin_can_mark_any_class(self):
        response = self.mark(user=self.admin)
        self.assertEqual(response.status_code, 201)

    def test_student_cannot_mark(self):
        response = self.mark(user=self.student)
        self.assertEqual(response.status_code, 403)

    def test_inactive_student_is_rejected(self):
        self.student.is_active = False
        self.student.save()

        response = self.mark()
        self.assertEqual(response.status_code, 403)
        self.assertTrue(response.json()['message'].startswith('Student is inactive'))

    def test_invalid_status_and_date(self):
        self.assertEqual(self.mark(status='Late').status_code, 400)
        self.assertEqual(self.mark(date='someday').json()['message'], 'Valid date is required')

    def test_low_flag_is_rewritten_on_all_rows(self):
        self.mark(date='2024-03-11', status='Present')
        self.mark(date='2024-03-12', status='Absent')

        statuses = set(Attendance.objects.filter(student=self.student).values_list('is_low_attendance', flat=True))
        self.assertEqual(statuses, {True})

        self.mark(date='2024-03-13', status='Present')
        self.mark(date='2024-03-14', status='Present')
        statuses = set(Attendance.objects.filter(student=self.student).values_list('is_low_attendance', flat=True))
        self.assertEqual(statuses, {False})

    def test_mark_writes_audit_entry(self):
        self.mark()

        entry = AuditLog.objects.get()
        self.assertEqual(entry.action, AuditLog.ACTION_MARK)
        self.assertEqual(entry.performed_by, self.teacher)
        self.assertEqual(entry.details['status'], 'Present')
        self.assertEqual(entry.method, 'POST')

    def test_mark_publishes_change_event(self):
        hub = get_hub()
        subscriber = hub.subscribe()
        try:
            self.mark()
            event, payload = subscriber.get_nowait()
        finally:
            hub.unsubscribe(subscriber)

        self.assertEqual(event, ATTENDANCE_CHANGED_EVENT)
        self.assertEqual(payload['action'], AuditLog.ACTION_MARK)
        self.assertEqual(payload['studentId'], self.student.pk)
        self.assertEqual(payload['percentage'], 100.0)


class BulkMarkTests(AttendanceBaseTestCase):
    def setUp(self):
        super().setUp()
        self.roster = [self.make_student(index) for index in range(1, 31)]
        self.absent = {student.pk for student in self.roster[:5]}

    def payload(self, **overrides):
        data = {
            'classId': self.school_class.pk,
            'date': '2024-03-11',
            'attendance': [
                {'studentId': student.pk, 'status': 'Absent' if student.pk in self.absent else 'Present'}
                for student in self.roster
            ],
        }
        data.update(overrides)
        return data

    def test_bulk_upserts_and_reports_counts(self):
        response = self.send('post', reverse('attendance_bulk_mark'), self.teacher, self.payload())

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['message'], 'Bulk attendance marked successfully')
        self.assertEqual(response.json()['upsertedCount'], 30)
        self.assertEqual(response.json()['matchedCount'], 0)
        self.assertEqual(response.json()['failedCount'], 0)
        self.assertEqual(Attendance.objects.filter(status='Absent').count(), 5)

        monthly = self.send('get', reverse('attendance_monthly'), self.admin, {'month': 3, 'year': 2024}).json()
        self.assertEqual(monthly['totalClasses'], 30)
        self.assertEqual(monthly['present'], 25)
        self.assertEqual(monthly['percentage'], 83.33)

        ranking = self.send('get', reverse('attendance_ranking'), self.teacher).json()
        self.assertEqual(len(ranking), 30)
        self.assertEqual(ranking[0]['rank'], 1)
        self.assertEqual(ranking[0]['percentage'], 100.0)
        self.assertEqual(ranking[-1]['percentage'], 0.0)
        self.assertTrue(ranking[-1]['isLowAttendance'])

    def test_repeating_bulk_matches_existing_rows(self):
        url = reverse('attendance_bulk_mark')
        self.send('post', url, self.teacher, self.payload())

        self.absent = set()
        response = self.send('post', url, self.teacher, self.payload())

        self.assertEqual(response.json()['upsertedCount'], 0)
        self.assertEqual(response.json()['matchedCount'], 30)
        self.assertEqual(response.json()['modifiedCount'], 5)
        self.assertEqual(Attendance.objects.count(), 30)

    def test_failing_row_does_not_abort_the_rest(self):
        failing = self.roster[10]
        upsert_row = services._upsert_row

        def flaky_upsert(**kwargs):
            if kwargs['student_id'] == failing.pk:
                raise DatabaseError('disk I/O error')
            return upsert_row(**kwargs)

        with patch.object(services, '_upsert_row', side_effect=flaky_upsert), \
                self.assertLogs('apps.core.attendance.services', level='ERROR'):
            response = self.send('post', reverse('attendance_bulk_mark'), self.teacher, self.payload())

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['failedCount'], 1)
        self.assertEqual(response.json()['upsertedCount'], 29)
        self.assertEqual(Attendance.objects.count(), 29)
        self.assertFalse(Attendance.objects.filter(student=failing).exists())

        low_flags = set(
            Attendance.objects.filter(student_id__in=self.absent).values_list('is_low_attendance', flat=True)
        )
        self.assertEqual(low_flags, {True})

        entry = AuditLog.objects.get(action=AuditLog.ACTION_BULK_MARK)
        self.assertEqual(entry.details['failedCount'], 1)
        self.assertEqual(entry.details['upsertedCount'], 29)

    def test_invalid_status_rejects_whole_request(self):
        data = self.payload()
        data['attendance'][3]['status'] = 'Late'

        response = self.send('post', reverse('attendance_bulk_mark'), self.teacher, data)

        self.assertEqual(response.status_code, 400)
        self.assertIn('Invalid status for student', response.json()['message'])
        self.assertFalse(Attendance.objects.exists())

    def test_inactive_students_are_listed(self):
        blocked = self.roster[7]
        blocked.is_active = False
        blocked.save()

        response = self.send('post', reverse('attendance_bulk_mark'), self.teacher, self.payload())

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['studentIds'], [blocked.pk])
        self.assertFalse(Attendance.objects.exists())

    def test_missing_data_is_bad_request(self):
        response = self.send('post', reverse('attendance_bulk_mark'), self.teacher, {'classId': self.school_class.pk})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Invalid data')

    def test_admin_cannot_bulk_mark(self):
        response = self.send('post', reverse('attendance_bulk_mark'), self.admin, self.payload())
        self.assertEqual(response.status_code, 403)

    def test_unauthorized_teacher_is_rejected(self):
        response = self.send('post', reverse('attendance_bulk_mark'), self.other_teacher, self.payload())
        self.assertEqual(response.status_code, 403)

    def test_bulk_writes_single_audit_entry(self):
        self.send('post', reverse('attendance_bulk_mark'), self.teacher, self.payload())

        entry = AuditLog.objects.get(action=AuditLog.ACTION_BULK_MARK)
        self.assertEqual(entry.details['upsertedCount'], 30)
        self.assertEqual(entry.details['date'], '2024-03-11')


class EditLockTests(AttendanceBaseTestCase):
    def test_recent_record_can_be_updated(self):
        record = self.record(self.student, self.today - timedelta(days=3))

        response = self.send('put', reverse('attendance_detail', args=[record.pk]), self.teacher, {'status': 'Absent'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'Absent')
        self.assertEqual(response.json()['updatedBy'], self.teacher.pk)
        self.assertTrue(response.json()['isLowAttendance'])

    def test_old_record_is_locked(self):
        record = self.record(self.student, self.today - timedelta(days=4))

        response = self.send('put', reverse('attendance_detail', args=[record.pk]), self.teacher, {'status': 'Absent'})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], 'Attendance locked after 3 days')

        delete = self.send('delete', reverse('attendance_detail', args=[record.pk]), self.admin)
        self.assertEqual(delete.status_code, 403)

    def test_authorization_is_checked_before_lock(self):
        record = self.record(self.student, self.today - timedelta(days=10))

        response = self.send('put', reverse('attendance_detail', args=[record.pk]), self.other_teacher, {'status': 'Absent'})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], 'Not authorized to update this record')

    @override_settings(ATTENDANCE_EDIT_LOCK_DAYS=7)
    def test_lock_window_is_configurable(self):
        record = self.record(self.student, self.today - timedelta(days=6))
        response = self.send('put', reverse('attendance_detail', args=[record.pk]), self.teacher, {'status': 'Absent'})
        self.assertEqual(response.status_code, 200)

    def test_delete_refreshes_flags_and_audits(self):
        absent = self.record(self.student, self.today, status=Attendance.STATUS_ABSENT)
        self.record(self.student, self.today - timedelta(days=1))
        refresh_student_flags(self.student)

        response = self.send('delete', reverse('attendance_detail', args=[absent.pk]), self.teacher)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Attendance deleted successfully')
        self.assertFalse(Attendance.objects.get(student=self.student).is_low_attendance)
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_DELETE, attendance_id=absent.pk).exists())

    def test_missing_record_is_not_found(self):
        response = self.send('put', reverse('attendance_detail', args=[9999]), self.teacher, {'status': 'Absent'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Attendance record not found')

    def test_student_cannot_edit(self):
        record = self.record(self.student, self.today)
        response = self.send('put', reverse('attendance_detail', args=[record.pk]), self.student, {'status': 'Absent'})
        self.assertEqual(response.status_code, 403)


class ReportTests(AttendanceBaseTestCase):
    def setUp(self):
        super().setUp()
        self.science = SchoolClass.objects.create(
            class_name='CSE-A Science',
            subject='Science',
            teacher=self.other_teacher,
        )
        self.weak = self.make_student(1)

        self.record(self.student, date(2024, 3, 11))
        self.record(self.student, date(2024, 3, 12))
        self.record(self.student, date(2024, 3, 11), status=Attendance.STATUS_ABSENT, school_class=self.science)
        self.record(self.weak, date(2024, 3, 11), status=Attendance.STATUS_ABSENT)
        self.record(self.weak, date(2024, 4, 2))

    def test_student_percentage_with_no_records_is_zero(self):
        fresh = self.make_student(2)
        response = self.send('get', reverse('attendance_student_percentage', args=[fresh.pk]), self.admin)
        self.assertEqual(response.json(), {'totalClasses': 0, 'present': 0, 'percentage': 0})

    def test_student_percentage(self):
        response = self.send('get', reverse('attendance_student_percentage', args=[self.student.pk]), self.teacher)
        self.assertEqual(response.json(), {'totalClasses': 3, 'present': 2, 'percentage': 66.67})

    def test_student_cannot_read_other_student(self):
        response = self.send('get', reverse('attendance_student_percentage', args=[self.weak.pk]), self.student)
        self.assertEqual(response.status_code, 403)

    def test_invalid_student_id_is_bad_request(self):
        response = self.send('get', reverse('attendance_student_percentage', args=['abc']), self.admin)
        self.assertEqual(response.status_code, 400)

    def test_class_wise_percentage_for_student(self):
        response = self.send('get', reverse('attendance_class_wise_percentage'), self.student)

        rows = {row['className']: row for row in response.json()}
        self.assertEqual(rows['CSE-A Maths']['percentage'], 100.0)
        self.assertFalse(rows['CSE-A Maths']['isLowAttendance'])
        self.assertEqual(rows['CSE-A Science']['percentage'], 0.0)
        self.assertTrue(rows['CSE-A Science']['isLowAttendance'])

    def test_class_wise_percentage_is_student_only(self):
        response = self.send('get', reverse('attendance_class_wise_percentage'), self.teacher)
        self.assertEqual(response.status_code, 403)

    def test_low_attendance_report(self):
        response = self.send('get', reverse('attendance_low'), self.admin)

        self.assertEqual(response.status_code, 200)
        rows = response.json()
        self.assertEqual([row['studentId'] for row in rows], [self.weak.pk, self.student.pk])
        self.assertEqual(rows[0]['percentage'], 50.0)

        custom = self.send('get', reverse('attendance_low'), self.admin, {'limit': 60}).json()
        self.assertEqual([row['studentId'] for row in custom], [self.weak.pk])

    def test_low_attendance_skips_inactive_students(self):
        self.weak.is_active = False
        self.weak.save()
        rows = self.send('get', reverse('attendance_low'), self.teacher).json()
        self.assertNotIn(self.weak.pk, [row['studentId'] for row in rows])

    def test_monthly_requires_month_and_year(self):
        response = self.send('get', reverse('attendance_monthly'), self.admin, {'month': 3})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Month and year required')

    def test_monthly_is_scoped_by_role(self):
        params = {'month': 3, 'year': 2024}

        admin = self.send('get', reverse('attendance_monthly'), self.admin, params).json()
        teacher = self.send('get', reverse('attendance_monthly'), self.teacher, params).json()
        student = self.send('get', reverse('attendance_monthly'), self.student, params).json()

        self.assertEqual(admin['totalClasses'], 4)
        self.assertEqual(teacher['totalClasses'], 3)
        self.assertEqual(student['totalClasses'], 3)
        self.assertEqual(student['present'], 2)

    def test_listing_is_scoped_by_role(self):
        url = reverse('attendance_root')

        admin = self.send('get', url, self.admin).json()
        teacher = self.send('get', url, self.other_teacher).json()
        student = self.send('get', url, self.weak).json()
        ranged = self.send('get', url, self.admin, {'start': '2024-04-01', 'end': '2024-04-30'}).json()

        self.assertEqual(len(admin), 5)
        self.assertEqual({row['class']['id'] for row in teacher}, {self.science.pk})
        self.assertEqual({row['student']['id'] for row in student}, {self.weak.pk})
        self.assertEqual([row['date'] for row in ranged], ['2024-04-02'])

    def test_listing_rejects_bad_range(self):
        response = self.send('get', reverse('attendance_root'), self.admin, {'start': 'x', 'end': 'y'})
        self.assertEqual(response.status_code, 400)

    def test_ranking_filters_by_subject(self):
        rows = self.send('get', reverse('attendance_ranking'), self.admin, {'subject': 'Science'}).json()
        self.assertEqual([(row['studentId'], row['percentage']) for row in rows], [(self.student.pk, 0.0)])


class ExportTests(AttendanceBaseTestCase):
    def setUp(self):
        super().setUp()
        self.record(self.student, date(2024, 3, 11))

    def test_csv_export(self):
        response = self.send('get', reverse('attendance_export_csv'), self.admin)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('attachment; filename="attendance.csv"', response['Content-Disposition'])
        lines = response.content.decode('utf-8').splitlines()
        self.assertEqual(lines[0], 'Student,Email,Class,Subject,Date,Status')
        self.assertEqual(lines[1], 'Asha,student@example.com,CSE-A Maths,Mathematics,2024-03-11,Present')

    def test_pdf_export(self):
        response = self.send('get', reverse('attendance_export_pdf'), self.admin)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_exports_are_admin_only(self):
        self.assertEqual(self.send('get', reverse('attendance_export_csv'), self.teacher).status_code, 403)
        self.assertEqual(self.send('get', reverse('attendance_export_pdf'), self.student).status_code, 403)


@override_settings(
    LOW_ATTENDANCE_EMAIL_ENABLED=True,
    LOW_ATTENDANCE_EMAIL_ASYNC=False,
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
)
class LowAttendanceEmailTests(AttendanceBaseTestCase):
    def test_email_sent_below_threshold(self):
        self.record(self.student, date(2024, 3, 11), status=Attendance.STATUS_ABSENT)
        self.record(self.student, date(2024, 3, 12), status=Attendance.STATUS_ABSENT)
        self.record(self.student, date(2024, 3, 13))

        refresh_student_flags(self.student)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, 'Attendance Warning')
        self.assertEqual(message.to, ['student@example.com'])
        self.assertIn('Hello Asha, your attendance is 33.33%.', message.body)

    def test_no_email_at_or_above_threshold(self):
        self.record(self.student, date(2024, 3, 11))
        self.record(self.student, date(2024, 3, 12), status=Attendance.STATUS_ABSENT)

        refresh_student_flags(self.student)
        self.assertEqual(mail.outbox, [])

    def test_no_email_without_records(self):
        refresh_student_flags(self.student)
        self.assertEqual(mail.outbox, [])

    @override_settings(LOW_ATTENDANCE_EMAIL_ENABLED=False)
    def test_disabled_email_is_skipped(self):
        self.record(self.student, date(2024, 3, 11), status=Attendance.STATUS_ABSENT)
        refresh_student_flags(self.student)
        self.assertEqual(mail.outbox, [])


class BroadcastHubTests(TestCase):
    def test_publish_reaches_every_subscriber(self):
        hub = BroadcastHub()
        first = hub.subscribe()
        second = hub.subscribe()

        delivered = hub.publish('attendance:changed', {'classId': 1})

        self.assertEqual(delivered, 2)
        self.assertEqual(first.get_nowait(), ('attendance:changed', {'classId': 1}))
        self.assertEqual(second.get_nowait(), ('attendance:changed', {'classId': 1}))

    def test_full_subscriber_is_skipped(self):
        hub = BroadcastHub(max_queue_size=1)
        slow = hub.subscribe()
        hub.publish('attendance:changed', {'n': 1})

        self.assertEqual(hub.publish('attendance:changed', {'n': 2}), 0)
        self.assertEqual(slow.get_nowait(), ('attendance:changed', {'n': 1}))

    def test_stream_yields_events_until_closed(self):
        hub = BroadcastHub()
        subscriber = hub.subscribe()
        hub.publish('attendance:changed', {'classId': 3})
        hub.close()

        frames = list(event_stream(hub, subscriber, heartbeat_seconds=0.01))

        self.assertEqual(frames[0], ': connected\n\n')
        self.assertEqual(frames[1], format_sse('attendance:changed', {'classId': 3}))
        self.assertEqual(len(frames), 2)
        self.assertEqual(hub.subscriber_count, 0)

    def test_subscribe_after_close_ends_immediately(self):
        hub = BroadcastHub()
        hub.close()
        frames = list(event_stream(hub, hub.subscribe(), heartbeat_seconds=0.01))
        self.assertEqual(frames, [': connected\n\n'])

    def test_format_sse(self):
        self.assertEqual(
            format_sse('attendance:changed', {'a': 1}),
            'event: attendance:changed\ndata: {"a": 1}\n\n',
        )


class ApiSurfaceTests(AttendanceBaseTestCase):
    def test_health_reports_database(self):
        response = self.client.get(reverse('health'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ok')
        self.assertEqual(response.json()['database'], 'up')

    def test_unknown_route_returns_json_404(self):
        response = self.client.get('/api/does-not-exist')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Route not found: /api/does-not-exist')

    @override_settings(DEBUG=True)
    def test_unknown_route_is_json_in_debug_mode(self):
        response = self.client.get('/api/nope')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(response.json()['message'], 'Route not found: /api/nope')

    def test_collection_roots_accept_paths_without_trailing_slash(self):
        marked = self.send('post', '/api/attendance', self.teacher, {
            'studentId': self.student.pk,
            'classId': self.school_class.pk,
            'date': '2024-03-11',
            'status': 'Present',
        })
        self.assertEqual(marked.status_code, 201)
        self.assertEqual(self.send('get', '/api/attendance/', self.teacher).status_code, 200)

        self.assertEqual(self.send('get', '/api/users', self.admin).status_code, 200)
        self.assertEqual(self.send('get', '/api/semesters', self.teacher).status_code, 200)
        created = self.send('post', '/api/classes', self.teacher, {'className': 'Lab Batch', 'subject': 'Physics'})
        self.assertEqual(created.status_code, 201)

    def test_monthly_rejects_year_out_of_range(self):
        response = self.send('get', reverse('attendance_monthly'), self.admin, {'month': 1, 'year': 10000})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Month and year required')

    def test_malformed_json_is_bad_request(self):
        response = self.client.post(
            reverse('attendance_root'),
            data='{not json',
            content_type='application/json',
            HTTP_AUTHORIZATION=f'Bearer {create_access_token(self.teacher)}',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Request body must be valid JSON')

    def test_events_requires_token(self):
        response = self.client.get(reverse('attendance_events'))
        self.assertEqual(response.status_code, 401)


@override_settings(LOW_ATTENDANCE_EMAIL_ENABLED=False)
class SeedCommandTests(TestCase):
    def test_seed_builds_sample_data_and_is_repeatable(self):
        call_command('seed_sample_data', students=2, weeks=1, seed=7, stdout=StringIO())
        call_command('seed_sample_data', students=2, weeks=1, seed=7, stdout=StringIO())

        user_model = get_user_model()
        self.assertTrue(user_model.objects.filter(role='admin', email='admin@smartattendance.edu').exists())
        self.assertEqual(user_model.objects.filter(role='student').count(), 6)
        self.assertEqual(user_model.objects.filter(role='teacher').count(), 9)
        self.assertEqual(AcademicProgram.objects.count(), 1)
        self.assertEqual(SchoolClass.objects.count(), 9)
        self.assertTrue(Attendance.objects.exists())
        self.assertFalse(
            user_model.objects.filter(role='teacher', teacher_id__isnull=True).exists()
        )
