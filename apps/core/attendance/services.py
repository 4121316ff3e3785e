from __future__ import annotations

import csv
import logging
from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO, StringIO

from PIL import Image, ImageDraw
from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from apps.core.api.errors import BadRequest, Conflict, Forbidden, NotFound
from apps.core.api.http import normalize_text, optional_id, parse_semester
from apps.core.classes.models import SchoolClass
from apps.core.classes.services import is_teacher_authorized_for_class, resolve_class, teacher_class_ids
from apps.core.users.audit import log_audit_event
from apps.core.users.models import AuditLog, User
from apps.core.utils.dates import month_bounds, normalize_date

from .models import Attendance
from .notifications import send_low_attendance_email
from .signals import notify_attendance_change


logger = logging.getLogger(__name__)

VALID_STATUSES = (Attendance.STATUS_PRESENT, Attendance.STATUS_ABSENT)
EXPORT_HEADERS = ['Student', 'Email', 'Class', 'Subject', 'Date', 'Status']


def _lock_days() -> int:
    return int(getattr(settings, 'ATTENDANCE_EDIT_LOCK_DAYS', 3))


def _low_threshold() -> int:
    return int(getattr(settings, 'LOW_ATTENDANCE_THRESHOLD', 75))


def _email_threshold() -> int:
    return int(getattr(settings, 'LOW_ATTENDANCE_EMAIL_THRESHOLD', 60))


def attendance_percentage(present, total) -> Decimal:
    if not total:
        return Decimal('0')
    return (
        Decimal(present) / Decimal(total) * Decimal('100')
    ).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _rollup_row(total, present):
    return {
        'totalClasses': total,
        'present': present,
        'percentage': float(attendance_percentage(present, total)),
    }


def _counts(queryset):
    return queryset.aggregate(
        total=Count('id'),
        present=Count('id', filter=Q(status=Attendance.STATUS_PRESENT)),
    )


def _per_student(queryset):
    return (
        queryset.values('student_id', 'student__name', 'student__email')
        .annotate(
            total=Count('id'),
            present=Count('id', filter=Q(status=Attendance.STATUS_PRESENT)),
        )
        .order_by()
    )


def _student_rows(queryset):
    rows = []
    for row in _per_student(queryset):
        rows.append({
            'studentId': row['student_id'],
            'name': row['student__name'],
            'email': row['student__email'],
            **_rollup_row(row['total'], row['present']),
        })
    return rows


def _parse_status(value):
    status = normalize_text(value)
    if status not in VALID_STATUSES:
        raise BadRequest('Status must be Present or Absent')
    return status


def _parse_attendance_date(value):
    target_date = normalize_date(value) if normalize_text(value) else None
    if target_date is None:
        raise BadRequest('Valid date is required')
    return target_date


def _ensure_teacher_can_act(actor, school_class, target_date, message):
    if actor.is_teacher and not is_teacher_authorized_for_class(actor, school_class, target_date):
        raise Forbidden(message)


def _ensure_editable(record):
    lock_days = _lock_days()
    if (timezone.localdate() - record.date).days > lock_days:
        raise Forbidden(f'Attendance locked after {lock_days} days')


def _change_payload(*, action, attendance_id, class_id, student_id, percentage):
    return {
        'action': action,
        'attendanceId': attendance_id,
        'classId': class_id,
        'studentId': student_id,
        'percentage': percentage,
    }


# Reports

def student_overall_percentage(student) -> dict:
    counts = _counts(Attendance.objects.filter(student=student))
    return _rollup_row(counts['total'], counts['present'])


def student_class_breakdown(student) -> list[dict]:
    rows = (
        Attendance.objects.filter(student=student)
        .values('school_class_id', 'school_class__class_name', 'school_class__subject')
        .annotate(
            total=Count('id'),
            present=Count('id', filter=Q(status=Attendance.STATUS_PRESENT)),
        )
        .order_by('school_class__class_name', 'school_class_id')
    )

    threshold = _low_threshold()
    result = []
    for row in rows:
        rollup = _rollup_row(row['total'], row['present'])
        result.append({
            'classId': row['school_class_id'],
            'className': row['school_class__class_name'],
            'subject': row['school_class__subject'],
            **rollup,
            'isLowAttendance': row['total'] > 0 and rollup['percentage'] < threshold,
        })
    return result


def low_attendance_report(limit=None) -> list[dict]:
    limit = _low_threshold() if limit is None else limit
    queryset = Attendance.objects.filter(student__role=User.ROLE_STUDENT, student__is_active=True)
    rows = [row for row in _student_rows(queryset) if row['percentage'] < limit]
    rows.sort(key=lambda row: (row['percentage'], row['name']))
    return rows


def monthly_report(actor, *, month, year, class_id=None, student_id=None) -> dict:
    try:
        month = int(month)
        year = int(year)
    except (TypeError, ValueError):
        raise BadRequest('Month and year required')
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise BadRequest('Month and year required')

    start, end = month_bounds(year, month)
    queryset = Attendance.objects.filter(date__range=(start, end))

    if actor.is_student:
        queryset = queryset.filter(student=actor)
    elif actor.is_teacher:
        class_ids = teacher_class_ids(actor, start=start, end=end)
        if class_id:
            class_ids &= {class_id}
        queryset = queryset.filter(school_class_id__in=class_ids)
        if student_id:
            queryset = queryset.filter(student_id=student_id)
    else:
        if class_id:
            queryset = queryset.filter(school_class_id=class_id)
        if student_id:
            queryset = queryset.filter(student_id=student_id)

    counts = _counts(queryset)
    return {'month': month, 'year': year, **_rollup_row(counts['total'], counts['present'])}


def ranking_class_ids(filters) -> set[int] | None:
    """Resolve the optional academic filters to class ids; ``None`` means unfiltered."""
    class_filter = {}

    program_id = optional_id(filters.get('programId'), 'program filter')
    session_id = optional_id(filters.get('sessionId'), 'session filter')
    branch_id = optional_id(filters.get('branchId'), 'branch filter')
    if program_id:
        class_filter['program_id'] = program_id
    if session_id:
        class_filter['session_id'] = session_id
    if branch_id:
        class_filter['branch_id'] = branch_id

    semester = parse_semester(filters.get('semester'), required=False)
    if semester is not None:
        class_filter['academic_semester'] = semester

    group_label = normalize_text(filters.get('groupLabel'))
    if group_label:
        class_filter['group_label'] = group_label
    subject = normalize_text(filters.get('subject'))
    if subject:
        class_filter['subject'] = subject

    if not class_filter:
        return None
    return set(SchoolClass.objects.filter(**class_filter).values_list('id', flat=True))


def attendance_ranking(actor, filters) -> list[dict]:
    scoped_ids = ranking_class_ids(filters)
    queryset = Attendance.objects.all()

    if actor.is_teacher:
        class_ids = teacher_class_ids(actor, include_all_overrides=True)
        if scoped_ids is not None:
            class_ids &= scoped_ids
        queryset = queryset.filter(school_class_id__in=class_ids)
    elif scoped_ids is not None:
        queryset = queryset.filter(school_class_id__in=scoped_ids)

    rows = _student_rows(queryset)
    rows.sort(key=lambda row: (-row['percentage'], row['name']))

    threshold = _low_threshold()
    return [
        {'rank': index, **row, 'isLowAttendance': row['percentage'] < threshold}
        for index, row in enumerate(rows, start=1)
    ]


def attendance_listing(actor, *, start=None, end=None, class_id=None):
    queryset = Attendance.objects.select_related('student', 'school_class', 'school_class__teacher')

    start_date = end_date = None
    if start and end:
        start_date = normalize_date(start)
        end_date = normalize_date(end)
        if start_date is None or end_date is None:
            raise BadRequest('Invalid start or end date')
        queryset = queryset.filter(date__range=(start_date, end_date))

    if actor.is_admin:
        if class_id:
            queryset = queryset.filter(school_class_id=class_id)
        return queryset.order_by('-date', '-id')

    if actor.is_teacher:
        class_ids = teacher_class_ids(
            actor,
            start=start_date,
            end=end_date,
            include_all_overrides=start_date is None,
        )
        if class_id:
            class_ids = {class_id} if class_id in class_ids else set()
        return queryset.filter(school_class_id__in=class_ids).order_by('-date', '-id')

    queryset = queryset.filter(student=actor)
    if class_id:
        queryset = queryset.filter(school_class_id=class_id)
    return queryset.order_by('-date', '-id')


# Mutations

def refresh_student_flags(student) -> dict:
    """Recompute the student's overall percentage and rewrite the flag on all their rows."""
    counts = _counts(Attendance.objects.filter(student=student))
    percentage = attendance_percentage(counts['present'], counts['total'])
    is_low = percentage < _low_threshold()

    Attendance.objects.filter(student=student).update(is_low_attendance=is_low)

    if counts['total'] and percentage < _email_threshold():
        send_low_attendance_email(to_email=student.email, name=student.name, percentage=percentage)

    return {
        'total': counts['total'],
        'present': counts['present'],
        'percentage': float(percentage),
        'isLowAttendance': is_low,
    }


def _student_or_404(student_id):
    text = normalize_text(student_id)
    student = None
    if text.isdigit():
        student = User.objects.filter(pk=int(text)).first()
    if student is None or not student.is_student:
        raise NotFound('Student not found')
    if not student.is_active:
        raise Forbidden('Student is inactive. Admin must activate student account before attendance can be marked.')
    return student


def mark_attendance(*, actor, student_id, class_ref, target_date, status, request=None):
    target_date = _parse_attendance_date(target_date)
    try:
        school_class = resolve_class(class_ref)
    except (BadRequest, NotFound):
        raise NotFound('Class not found (use valid Class ID or exact class name)')

    _ensure_teacher_can_act(actor, school_class, target_date, 'Not authorized for this class on selected date')
    student = _student_or_404(student_id)
    status = _parse_status(status)

    try:
        with transaction.atomic():
            record = Attendance.objects.create(
                student=student,
                school_class=school_class,
                date=target_date,
                status=status,
                marked_by=actor,
                updated_by=actor,
            )
    except IntegrityError:
        raise Conflict('Attendance already marked for this student/class/date')

    metrics = refresh_student_flags(student)
    record.is_low_attendance = metrics['isLowAttendance']

    log_audit_event(
        action=AuditLog.ACTION_MARK,
        performed_by=actor,
        attendance_id=record.pk,
        details={'classId': school_class.pk, 'studentId': student.pk, 'status': status},
        request=request,
    )
    notify_attendance_change(_change_payload(
        action=AuditLog.ACTION_MARK,
        attendance_id=record.pk,
        class_id=school_class.pk,
        student_id=student.pk,
        percentage=metrics['percentage'],
    ))
    return record


def _parse_bulk_entries(entries):
    statuses = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise BadRequest('Valid student IDs are required')
        student_text = normalize_text(entry.get('studentId'))
        if not student_text:
            continue
        if not student_text.isdigit():
            raise BadRequest('Valid student IDs are required')
        status = normalize_text(entry.get('status'))
        if status not in VALID_STATUSES:
            raise BadRequest(f'Invalid status for student {student_text}: must be Present or Absent')
        statuses[int(student_text)] = status

    if not statuses:
        raise BadRequest('Valid student IDs are required')
    return statuses


def _upsert_row(*, actor, school_class, target_date, student_id, status):
    """Returns ``'upserted'``, ``'modified'`` or ``'matched'``."""
    with transaction.atomic():
        record = (
            Attendance.objects.select_for_update()
            .filter(student_id=student_id, school_class=school_class, date=target_date)
            .first()
        )
        if record is None:
            Attendance.objects.create(
                student_id=student_id,
                school_class=school_class,
                date=target_date,
                status=status,
                marked_by=actor,
                updated_by=actor,
            )
            return 'upserted'

        if record.status == status and record.marked_by_id == actor.pk and record.updated_by_id == actor.pk:
            return 'matched'

        record.status = status
        record.marked_by = actor
        record.updated_by = actor
        record.save(update_fields=['status', 'marked_by', 'updated_by', 'updated_at'])
        return 'modified'


def bulk_mark_attendance(*, actor, class_id, target_date, entries, request=None) -> dict:
    if not class_id or not target_date or not isinstance(entries, list) or not entries:
        raise BadRequest('Invalid data')

    class_text = normalize_text(class_id)
    if not class_text.isdigit():
        raise BadRequest('Valid class is required')
    target_date = _parse_attendance_date(target_date)
    statuses = _parse_bulk_entries(entries)

    active_ids = set(
        User.objects.filter(pk__in=statuses, role=User.ROLE_STUDENT, is_active=True)
        .values_list('id', flat=True)
    )
    blocked_ids = sorted(set(statuses) - active_ids)
    if blocked_ids:
        raise Forbidden(
            'One or more students are inactive. Admin must activate student account before attendance can be marked.',
            extra={'studentIds': blocked_ids},
        )

    school_class = SchoolClass.objects.filter(pk=int(class_text)).first()
    if school_class is None:
        raise NotFound('Class not found')
    _ensure_teacher_can_act(actor, school_class, target_date, 'Not authorized for this class on selected date')

    counts = {'matched': 0, 'modified': 0, 'upserted': 0, 'failed': 0}
    written_ids = []
    for student_id, status in statuses.items():
        try:
            outcome = _upsert_row(
                actor=actor,
                school_class=school_class,
                target_date=target_date,
                student_id=student_id,
                status=status,
            )
        except (IntegrityError, DatabaseError):
            logger.exception('Bulk attendance row failed for student %s in class %s', student_id, school_class.pk)
            counts['failed'] += 1
            continue

        if outcome == 'upserted':
            counts['upserted'] += 1
        else:
            counts['matched'] += 1
            if outcome == 'modified':
                counts['modified'] += 1
        written_ids.append(student_id)

    percentages = {}
    for student in User.objects.filter(pk__in=written_ids):
        percentages[str(student.pk)] = refresh_student_flags(student)['percentage']

    result = {
        'matchedCount': counts['matched'],
        'modifiedCount': counts['modified'],
        'upsertedCount': counts['upserted'],
        'failedCount': counts['failed'],
    }

    log_audit_event(
        action=AuditLog.ACTION_BULK_MARK,
        performed_by=actor,
        details={'classId': school_class.pk, 'date': target_date, **result},
        request=request,
    )
    notify_attendance_change({
        'action': AuditLog.ACTION_BULK_MARK,
        'classId': school_class.pk,
        'date': target_date.isoformat(),
        **result,
        'percentages': percentages,
    })
    return result


def _record_or_404(record_id, message):
    text = normalize_text(record_id)
    record = None
    if text.isdigit():
        record = Attendance.objects.select_related('school_class', 'student').filter(pk=int(text)).first()
    if record is None:
        raise NotFound(message)
    return record


def update_attendance(*, actor, record_id, status, request=None):
    record = _record_or_404(record_id, 'Attendance record not found')
    _ensure_teacher_can_act(actor, record.school_class, record.date, 'Not authorized to update this record')
    _ensure_editable(record)
    status = _parse_status(status)

    record.status = status
    record.updated_by = actor
    record.save(update_fields=['status', 'updated_by', 'updated_at'])

    metrics = refresh_student_flags(record.student)
    record.is_low_attendance = metrics['isLowAttendance']

    log_audit_event(
        action=AuditLog.ACTION_UPDATE,
        performed_by=actor,
        attendance_id=record.pk,
        details={'status': status},
        request=request,
    )
    notify_attendance_change(_change_payload(
        action=AuditLog.ACTION_UPDATE,
        attendance_id=record.pk,
        class_id=record.school_class_id,
        student_id=record.student_id,
        percentage=metrics['percentage'],
    ))
    return record


def delete_attendance(*, actor, record_id, request=None):
    record = _record_or_404(record_id, 'Attendance not found')
    _ensure_teacher_can_act(actor, record.school_class, record.date, 'Not authorized to delete this record')
    _ensure_editable(record)

    attendance_id = record.pk
    student = record.student
    class_id = record.school_class_id
    record.delete()

    metrics = refresh_student_flags(student)

    log_audit_event(
        action=AuditLog.ACTION_DELETE,
        performed_by=actor,
        attendance_id=attendance_id,
        details={'studentId': student.pk, 'classId': class_id},
        request=request,
    )
    notify_attendance_change(_change_payload(
        action=AuditLog.ACTION_DELETE,
        attendance_id=attendance_id,
        class_id=class_id,
        student_id=student.pk,
        percentage=metrics['percentage'],
    ))


# Exports

def export_rows():
    records = Attendance.objects.select_related('student', 'school_class').order_by('-date', '-id')
    return [
        [
            record.student.name,
            record.student.email,
            record.school_class.class_name,
            record.school_class.subject,
            record.date.isoformat(),
            record.status,
        ]
        for record in records
    ]


def rows_to_csv_bytes(headers, rows):
    output = StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return output.getvalue().encode('utf-8')


def _images_to_pdf_bytes(images):
    rgb_images = [img.convert('RGB') for img in images]
    output = BytesIO()
    rgb_images[0].save(output, format='PDF', save_all=True, append_images=rgb_images[1:])
    return output.getvalue()


def _draw_table_page(*, title, subtitle, headers, rows, page_number, page_count):
    width, height = 1240, 1754
    margin = 60
    row_height = 34
    col_width = (width - 2 * margin) // max(1, len(headers))
    max_chars = max(4, col_width // 8)

    image = Image.new('RGB', (width, height), 'white')
    draw = ImageDraw.Draw(image)

    draw.text((margin, margin), title, fill='black')
    draw.text((width - margin - 260, margin), subtitle, fill='#666666')

    y = margin + 60
    for idx, header in enumerate(headers):
        x1 = margin + idx * col_width
        draw.rectangle((x1, y, x1 + col_width, y + row_height), outline='black', fill='#eeeeee')
        draw.text((x1 + 6, y + 10), str(header), fill='black')

    y += row_height
    for row in rows:
        for idx, value in enumerate(row):
            x1 = margin + idx * col_width
            draw.rectangle((x1, y, x1 + col_width, y + row_height), outline='#dddddd')
            text = str(value) if value not in (None, '') else '-'
            if len(text) > max_chars:
                text = text[:max_chars - 3] + '...'
            draw.text((x1 + 6, y + 10), text, fill='black')
        y += row_height

    draw.text((width // 2 - 40, height - margin), f'Page {page_number} of {page_count}', fill='#666666')
    return image


def table_pdf_bytes(title, headers, rows, *, subtitle='', rows_per_page=None):
    rows_per_page = rows_per_page or int(getattr(settings, 'ATTENDANCE_PDF_ROWS_PER_PAGE', 40))
    chunks = [rows[index:index + rows_per_page] for index in range(0, len(rows), rows_per_page)] or [[]]
    images = [
        _draw_table_page(
            title=title,
            subtitle=subtitle,
            headers=headers,
            rows=chunk,
            page_number=page_number,
            page_count=len(chunks),
        )
        for page_number, chunk in enumerate(chunks, start=1)
    ]
    return _images_to_pdf_bytes(images)


def attendance_csv_bytes():
    return rows_to_csv_bytes(EXPORT_HEADERS, export_rows())


def attendance_pdf_bytes():
    generated_on = timezone.localdate().isoformat()
    return table_pdf_bytes('Attendance Report', EXPORT_HEADERS, export_rows(), subtitle=f'Generated: {generated_on}')
