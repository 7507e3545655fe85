from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import GradeRecord, StudentMonthlySummary


@admin.register(GradeRecord)
class GradeRecordAdmin(ModelAdmin):
    list_display = ('student', 'subject', 'school_class', 'month', 'year', 'score', 'max_score', 'percentage')
    list_filter = ('year', 'month_number', 'school_class')
    search_fields = ('student__student_id', 'student__khmer_name', 'subject__code')
    raw_id_fields = ('student', 'subject')
    readonly_fields = ('percentage', 'weighted_score', 'created_at', 'updated_at')


@admin.register(StudentMonthlySummary)
class StudentMonthlySummaryAdmin(ModelAdmin):
    """Summaries are derived; edit grades and recalculate instead."""

    list_display = ('student', 'school_class', 'month', 'year', 'average', 'grade_level', 'class_rank')
    list_filter = ('year', 'month_number', 'school_class')
    raw_id_fields = ('student',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
