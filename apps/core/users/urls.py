from django.urls import path

from . import views

urlpatterns = [
    path('login', views.login, name='login'),
    path('profile', views.profile, name='profile'),
    path('teachers', views.teachers, name='teachers'),
    path('students', views.students, name='students'),
    path('<str:pk>/role', views.change_role, name='user_change_role'),
    path('<str:pk>/deactivate', views.deactivate, name='user_deactivate'),
    path('<str:pk>/activate', views.activate, name='user_activate'),
    path('<str:pk>/reset-password', views.reset_password, name='user_reset_password'),
    path('<str:pk>/student-group', views.student_group, name='user_student_group'),
]
