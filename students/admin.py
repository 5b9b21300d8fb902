from django.contrib import admin

from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'exam_id', 'current_class', 'status']
    list_filter = ['status', 'current_class']
    search_fields = ['first_name', 'last_name', 'exam_id']
