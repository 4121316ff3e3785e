from django.contrib import admin
from django.urls import include, path, re_path

from apps.core.academics import views as academic_views
from apps.core.api.views import health
from apps.core.attendance import views as attendance_views
from apps.core.classes import views as class_views
from apps.core.users import views as user_views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health', health, name='health'),

    # Collection roots answer with or without a trailing slash.
    re_path(r'^api/users/?$', user_views.users, name='users'),
    re_path(r'^api/classes/?$', class_views.create_class, name='class_create'),
    re_path(r'^api/attendance/?$', attendance_views.attendance_root, name='attendance_root'),
    re_path(r'^api/semesters/?$', academic_views.semesters, name='semesters'),

    path('api/users/', include('apps.core.users.urls')),
    path('api/classes/', include('apps.core.classes.urls')),
    path('api/attendance/', include('apps.core.attendance.urls')),
    path('api/admin/academic/', include('apps.core.academics.urls')),
]

handler404 = 'apps.core.api.views.not_found'
handler500 = 'apps.core.api.views.server_error'
