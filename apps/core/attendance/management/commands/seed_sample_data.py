import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from faker import Faker

from apps.core.academics.models import AcademicBranch, AcademicProgram, AcademicSession, AcademicSubject
from apps.core.attendance.models import Attendance
from apps.core.attendance.services import refresh_student_flags
from apps.core.classes.models import SchoolClass
from apps.core.classes.services import build_academic_class_name
from apps.core.users.models import User
from apps.core.users.services import generate_teacher_id


DEFAULT_PASSWORD = 'Welcome@123'
ADMIN_PASSWORD = 'Admin@123'
EMAIL_DOMAIN = 'smartattendance.edu'

BRANCHES = (
    ('Computer Science and Engineering', 'CSE'),
    ('Electronics and Communication Engineering', 'ECE'),
    ('Mechanical Engineering', 'ME'),
)

SUBJECTS = {
    'CSE': (('Engineering Mathematics-I', 'MA101'), ('Applied Physics', 'PH101'), ('Programming Fundamentals', 'CS101')),
    'ECE': (('Engineering Mathematics-I', 'MA101'), ('Basic Electronics', 'EC101'), ('Electrical Circuits', 'EE101')),
    'ME': (('Engineering Mathematics-I', 'MA101'), ('Engineering Mechanics', 'ME101'), ('Workshop Technology', 'ME102')),
}


class Command(BaseCommand):
    help = 'Seeds the database with sample programs, users, classes and attendance.'

    def add_arguments(self, parser):
        parser.add_argument('--students', type=int, default=12, help='Students per branch.')
        parser.add_argument('--weeks', type=int, default=3, help='Weeks of attendance history.')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for repeatable data.')

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Seeding database...')

        fake = Faker()
        rng = random.Random(options['seed'])
        if options['seed'] is not None:
            fake.seed_instance(options['seed'])

        admin = self._upsert_user(
            name='Super Admin',
            email=f'admin@{EMAIL_DOMAIN}',
            role=User.ROLE_ADMIN,
            password=ADMIN_PASSWORD,
        )

        program, _ = AcademicProgram.objects.get_or_create(
            name='Bachelor of Technology',
            is_active=True,
            defaults={'code': 'BTECH', 'description': '4-year undergraduate engineering program'},
        )
        session, _ = AcademicSession.objects.get_or_create(program=program, label='2023-27', is_active=True)

        classes_created = 0
        students_by_class = {}
        for branch_name, branch_code in BRANCHES:
            branch, _ = AcademicBranch.objects.get_or_create(
                program=program,
                session=session,
                name=branch_name,
                is_active=True,
                defaults={'code': branch_code},
            )

            students = [
                self._upsert_user(
                    name=fake.name(),
                    email=f'{branch_code.lower()}.student{index:02d}@{EMAIL_DOMAIN}',
                    role=User.ROLE_STUDENT,
                    password=DEFAULT_PASSWORD,
                    program=program,
                    session=session,
                    branch=branch,
                    semester=1,
                    group_label='1',
                )
                for index in range(1, options['students'] + 1)
            ]

            for subject_name, subject_code in SUBJECTS[branch_code]:
                subject, _ = AcademicSubject.objects.get_or_create(
                    program=program,
                    session=session,
                    branch=branch,
                    semester=1,
                    name=subject_name,
                    is_active=True,
                    defaults={'code': subject_code},
                )
                teacher = self._upsert_user(
                    name=fake.name(),
                    email=f'{branch_code.lower()}.{subject_code.lower()}@{EMAIL_DOMAIN}',
                    role=User.ROLE_TEACHER,
                    password=DEFAULT_PASSWORD,
                    subject=subject_name,
                )
                school_class, created = SchoolClass.objects.update_or_create(
                    program=program,
                    session=session,
                    branch=branch,
                    subject_ref=subject,
                    academic_semester=1,
                    group_label='1',
                    defaults={
                        'class_name': build_academic_class_name(
                            program=program,
                            session=session,
                            branch=branch,
                            semester=1,
                            group_label='1',
                        ),
                        'subject': subject.name,
                        'teacher': teacher,
                    },
                )
                classes_created += int(created)
                students_by_class[school_class] = students

        records = self._seed_attendance(students_by_class, weeks=options['weeks'], rng=rng)

        for student in User.objects.filter(role=User.ROLE_STUDENT, attendance_records__isnull=False).distinct():
            refresh_student_flags(student)

        self.stdout.write(self.style.SUCCESS(
            f'Seeded {classes_created} new classes and {records} attendance records. '
            f'Admin login: {admin.email} / {ADMIN_PASSWORD}'
        ))

    def _upsert_user(self, *, email, role, password, **fields):
        user = User.objects.filter(email=email).first()
        if user is None:
            if role == User.ROLE_TEACHER:
                fields['teacher_id'] = generate_teacher_id()
            return User.objects.create_user(email=email, password=password, role=role, **fields)

        fields.pop('name', None)
        for field, value in fields.items():
            setattr(user, field, value)
        user.role = role
        user.is_active = True
        if role == User.ROLE_TEACHER and not user.teacher_id:
            user.teacher_id = generate_teacher_id()
        user.set_password(password)
        user.save()
        return user

    def _seed_attendance(self, students_by_class, *, weeks, rng):
        today = timezone.localdate()
        days = [today - timedelta(days=offset) for offset in range(weeks * 7)]
        days = [day for day in days if day.weekday() < 5]

        created = 0
        for school_class, students in students_by_class.items():
            for student in students:
                # Presence rate varies per student so some fall below the threshold.
                presence_rate = rng.uniform(0.5, 0.98)
                for day in days:
                    status = Attendance.STATUS_PRESENT if rng.random() < presence_rate else Attendance.STATUS_ABSENT
                    _, was_created = Attendance.objects.get_or_create(
                        student=student,
                        school_class=school_class,
                        date=day,
                        defaults={
                            'status': status,
                            'marked_by': school_class.teacher,
                            'updated_by': school_class.teacher,
                        },
                    )
                    created += int(was_created)
        return created
