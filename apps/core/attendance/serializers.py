from apps.core.users.serializers import user_summary


def class_summary(school_class):
    return {
        'id': school_class.pk,
        'className': school_class.class_name,
        'subject': school_class.subject,
        'teacher': school_class.teacher_id,
    }


def attendance_payload(record):
    return {
        'id': record.pk,
        'student': user_summary(record.student),
        'class': class_summary(record.school_class),
        'date': record.date.isoformat(),
        'status': record.status,
        'isLowAttendance': record.is_low_attendance,
        'markedBy': record.marked_by_id,
        'updatedBy': record.updated_by_id,
        'createdAt': record.created_at.isoformat() if record.created_at else None,
        'updatedAt': record.updated_at.isoformat() if record.updated_at else None,
    }
