from django.urls import path

from . import views

urlpatterns = [
    path('my-classes', views.my_classes, name='my_classes'),
    path('allocate', views.allocate, name='class_allocate'),
    path('all', views.all_classes, name='class_list_all'),
    path('<str:pk>/teacher', views.change_teacher, name='class_change_teacher'),
]
