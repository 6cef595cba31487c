from django.urls import path
from . import views

app_name = 'attendance'

urlpatterns = [
    path('', views.dashboard, name='dashboard'),
    path('attendance/', views.day_attendance, name='day_attendance'),
    path('attendance/mark/', views.mark_attendance, name='mark_attendance'),
    path('attendance/mark-all-present/', views.mark_all_present, name='mark_all_present'),
    path('attendance/delete/', views.delete_day, name='delete_day'),
    path('attendance/summary/', views.day_summary, name='day_summary'),
    path('attendance/report/', views.day_report, name='day_report'),
    path('attendance/share/', views.share_report, name='share_report'),
    path('stats/', views.stats, name='stats'),
    path('stats/export/', views.stats_export, name='stats_export'),
    path('analytics/', views.analytics, name='analytics'),
    path('students/', views.student_list, name='student_list'),
    path('students/new/', views.student_create, name='student_create'),
    path('students/<uuid:pk>/edit/', views.student_edit, name='student_edit'),
    path('students/<uuid:pk>/delete/', views.student_delete, name='student_delete'),
    path('students/<uuid:pk>/history/', views.student_history, name='student_history'),
]
