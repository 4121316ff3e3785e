from django.urls import path

from . import views

urlpatterns = [
    path('bulk', views.bulk_mark, name='attendance_bulk_mark'),
    path('low-attendance', views.low_attendance, name='attendance_low'),
    path('monthly', views.monthly, name='attendance_monthly'),
    path('ranking', views.ranking, name='attendance_ranking'),
    path('class-wise-percentage', views.class_wise_percentage, name='attendance_class_wise_percentage'),
    path('percentage/<str:student_id>', views.student_percentage, name='attendance_student_percentage'),
    path('class-percentage/<str:student_id>', views.student_class_percentage, name='attendance_student_class_percentage'),
    path('export-csv', views.export_csv, name='attendance_export_csv'),
    path('export-pdf', views.export_pdf, name='attendance_export_pdf'),
    path('events', views.events, name='attendance_events'),
    path('<str:pk>', views.attendance_detail, name='attendance_detail'),
]
