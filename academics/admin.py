from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import AttendanceRecord, Class, Subject


@admin.register(Class)
class ClassAdmin(ModelAdmin):
    list_display = ('name', 'grade', 'track', 'class_teacher_name', 'is_active')
    list_filter = ('grade', 'track', 'is_active')
    search_fields = ('name', 'class_teacher_name')
    ordering = ('grade', 'name')


@admin.register(Subject)
class SubjectAdmin(ModelAdmin):
    """Subject catalog; coefficient and max score drive every average."""

    list_display = ('code', 'name_kh', 'name_en', 'grade', 'track', 'max_score', 'coefficient', 'is_active')
    list_filter = ('grade', 'track', 'is_active')
    search_fields = ('code', 'name_kh', 'name_en')
    ordering = ('grade', 'code')


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(ModelAdmin):
    list_display = ('student', 'class_assigned', 'date', 'status')
    list_filter = ('status', 'class_assigned')
    date_hierarchy = 'date'
    raw_id_fields = ('student',)
