from django.urls import path, include
from rest_framework.routers import SimpleRouter

from . import views, attendance_views

router = SimpleRouter()
router.register(r'sessions', views.ClassSessionViewSet, basename='session')
router.register(r'students', views.StudentViewSet, basename='student')
router.register(r'teachers', views.TeacherViewSet, basename='teacher')
router.register(r'venues', views.VenueViewSet, basename='venue')
router.register(r'groups', views.GroupViewSet, basename='group')

# Подключается под /api/organizations/<uuid:org_id>/
urlpatterns = [
    # Расписание группы
    path('groups/<int:group_id>/schedule/', views.GroupScheduleView.as_view(), name='group-schedule'),
    path('groups/<int:group_id>/schedule/generate/', views.GroupScheduleGenerateView.as_view(), name='group-schedule-generate'),
    path('groups/<int:group_id>/sessions/', views.GroupSessionsView.as_view(), name='group-sessions'),

    # Зачисления
    path('groups/<int:group_id>/enrollments/', views.GroupEnrollmentsView.as_view(), name='group-enrollments'),
    path('groups/<int:group_id>/enrollments/<int:enrollment_id>/', views.EnrollmentDetailView.as_view(), name='group-enrollment-detail'),
    path('students/<int:student_id>/enrollments/', views.StudentEnrollmentsView.as_view(), name='student-enrollments'),
    path('students/<int:student_id>/enrollments/move/', views.MoveStudentView.as_view(), name='student-enrollments-move'),

    # Посещения
    path('sessions/<int:session_id>/attendance/', attendance_views.SessionAttendanceView.as_view(), name='session-attendance'),
    path('attendance/missing/', attendance_views.MissingAttendanceView.as_view(), name='attendance-missing'),
    path('students/<int:student_id>/attendance/', attendance_views.StudentAttendanceView.as_view(), name='student-attendance'),

    path('', include(router.urls)),
]
