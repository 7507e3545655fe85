from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import Student


@admin.register(Student)
class StudentAdmin(ModelAdmin):
    list_display = ('student_id', 'display_name', 'gender', 'current_class', 'is_active')
    list_filter = ('gender', 'current_class', 'is_active')
    search_fields = ('student_id', 'khmer_name', 'first_name', 'last_name')
    ordering = ('last_name', 'first_name')
