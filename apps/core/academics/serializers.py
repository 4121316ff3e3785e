def _timestamps(instance):
    return {
        'createdAt': instance.created_at.isoformat() if instance.created_at else None,
        'updatedAt': instance.updated_at.isoformat() if instance.updated_at else None,
    }


def program_ref(program):
    if program is None:
        return None
    return {'id': program.pk, 'name': program.name, 'code': program.code}


def session_ref(session):
    if session is None:
        return None
    return {'id': session.pk, 'label': session.label}


def branch_ref(branch):
    if branch is None:
        return None
    return {'id': branch.pk, 'name': branch.name, 'code': branch.code}


def subject_ref(subject):
    if subject is None:
        return None
    return {'id': subject.pk, 'name': subject.name, 'code': subject.code, 'semester': subject.semester}


def program_payload(program):
    return {
        **program_ref(program),
        'description': program.description,
        'isActive': program.is_active,
        **_timestamps(program),
    }


def session_payload(session):
    return {
        'id': session.pk,
        'program': program_ref(session.program),
        'label': session.label,
        'isActive': session.is_active,
        **_timestamps(session),
    }


def branch_payload(branch):
    return {
        **branch_ref(branch),
        'program': program_ref(branch.program),
        'session': session_ref(branch.session),
        'isActive': branch.is_active,
        **_timestamps(branch),
    }


def subject_payload(subject):
    return {
        **subject_ref(subject),
        'program': program_ref(subject.program),
        'session': session_ref(subject.session),
        'branch': branch_ref(subject.branch),
        'isActive': subject.is_active,
        **_timestamps(subject),
    }


def semester_payload(semester):
    if semester is None:
        return None
    return {
        'id': semester.pk,
        'name': semester.name,
        'startDate': semester.start_date.isoformat(),
        'endDate': semester.end_date.isoformat(),
    }
