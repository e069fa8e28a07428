from django.contrib import admin
from .models import (
    Venue, Teacher, Student, Group, Enrollment,
    GroupSchedule, GroupScheduleSlot, ClassSession, AttendanceRecord,
)


@admin.register(Venue)
class VenueAdmin(admin.ModelAdmin):
    list_display = ('name', 'address', 'tenant', 'created_at')
    list_filter = ('tenant',)
    search_fields = ('name', 'address')


@admin.register(Teacher)
class TeacherAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'email', 'phone', 'tenant', 'user')
    list_filter = ('tenant',)
    search_fields = ('full_name', 'email')
    raw_id_fields = ('user',)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'email', 'phone', 'tenant', 'created_at')
    list_filter = ('tenant',)
    search_fields = ('full_name', 'email', 'phone')


class EnrollmentInline(admin.TabularInline):
    model = Enrollment
    extra = 0
    raw_id_fields = ('student',)
    readonly_fields = ('created_at',)


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ('name', 'teacher', 'venue', 'status', 'tenant', 'created_at')
    list_filter = ('status', 'tenant')
    search_fields = ('name', 'teacher__full_name')
    readonly_fields = ('created_at', 'updated_at')
    inlines = [EnrollmentInline]

    fieldsets = (
        ('Основная информация', {
            'fields': ('tenant', 'name', 'status', 'teacher', 'venue', 'started_at')
        }),
        ('Системная информация', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ('student', 'group', 'start_date', 'end_date')
    list_filter = ('group__tenant',)
    search_fields = ('student__full_name', 'group__name')
    raw_id_fields = ('student', 'group')
    date_hierarchy = 'start_date'


class GroupScheduleSlotInline(admin.TabularInline):
    model = GroupScheduleSlot
    extra = 0
    readonly_fields = ('day_of_week', 'start_time', 'sort_order')
    can_delete = False


@admin.register(GroupSchedule)
class GroupScheduleAdmin(admin.ModelAdmin):
    """Версии расписания только просматриваются: правки идут через API"""
    list_display = ('group', 'recurrence', 'duration_hours', 'effective_from', 'effective_to')
    list_filter = ('recurrence', 'tenant')
    search_fields = ('group__name',)
    readonly_fields = (
        'tenant', 'group', 'recurrence', 'duration_hours',
        'effective_from', 'effective_to', 'created_at',
    )
    inlines = [GroupScheduleSlotInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class AttendanceRecordInline(admin.TabularInline):
    model = AttendanceRecord
    extra = 0
    raw_id_fields = ('student',)
    readonly_fields = ('marked_at',)


@admin.register(ClassSession)
class ClassSessionAdmin(admin.ModelAdmin):
    list_display = ('date', 'start_time', 'end_time', 'group', 'teacher', 'venue', 'status')
    list_filter = ('status', 'tenant')
    search_fields = ('group__name', 'teacher__full_name')
    date_hierarchy = 'date'
    raw_id_fields = ('group', 'teacher', 'venue')
    inlines = [AttendanceRecordInline]


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ('student', 'session', 'status', 'marked_at')
    list_filter = ('status',)
    search_fields = ('student__full_name',)
    raw_id_fields = ('session', 'student')
