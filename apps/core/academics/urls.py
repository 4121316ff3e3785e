from django.urls import path

from . import views

urlpatterns = [
    path('programs', views.programs, name='academic_programs'),
    path('programs/<str:pk>', views.program_detail, name='academic_program_detail'),
    path('sessions', views.sessions, name='academic_sessions'),
    path('sessions/<str:pk>', views.session_detail, name='academic_session_detail'),
    path('branches', views.branches, name='academic_branches'),
    path('branches/<str:pk>', views.branch_detail, name='academic_branch_detail'),
    path('subjects', views.subjects, name='academic_subjects'),
    path('subjects/<str:pk>', views.subject_detail, name='academic_subject_detail'),
    path('summary', views.summary, name='academic_summary'),
]
