def user_summary(user):
    if user is None:
        return None
    return {'id': user.pk, 'name': user.name, 'email': user.email}


def teacher_summary(user):
    if user is None:
        return None
    return {
        **user_summary(user),
        'teacherId': user.teacher_id,
        'subject': user.subject,
    }


def user_payload(user):
    return {
        'id': user.pk,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'isActive': user.is_active,
        'teacherId': user.teacher_id,
        'subject': user.subject,
        'program': user.program_id,
        'session': user.session_id,
        'branch': user.branch_id,
        'semester': user.semester,
        'groupLabel': user.group_label,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
        'updatedAt': user.updated_at.isoformat() if user.updated_at else None,
    }
