from apps.core.academics.serializers import (
    branch_ref,
    program_ref,
    semester_payload,
    session_ref,
    subject_ref,
)
from apps.core.users.serializers import teacher_summary


CLASS_RELATED_FIELDS = ('teacher', 'semester', 'program', 'session', 'branch', 'subject_ref')


def class_payload(school_class):
    return {
        'id': school_class.pk,
        'className': school_class.class_name,
        'subject': school_class.subject,
        'teacher': teacher_summary(school_class.teacher),
        'semester': semester_payload(school_class.semester),
        'program': program_ref(school_class.program),
        'session': session_ref(school_class.session),
        'branch': branch_ref(school_class.branch),
        'subjectRef': subject_ref(school_class.subject_ref),
        'academicSemester': school_class.academic_semester,
        'groupLabel': school_class.group_label,
        'createdAt': school_class.created_at.isoformat() if school_class.created_at else None,
        'updatedAt': school_class.updated_at.isoformat() if school_class.updated_at else None,
    }


def override_payload(override):
    return {
        'id': override.pk,
        'class': override.school_class_id,
        'teacher': teacher_summary(override.teacher),
        'date': override.date.isoformat(),
        'assignedBy': override.assigned_by_id,
    }
