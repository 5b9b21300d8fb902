from django.contrib import admin

from .models import PublishedResult, SubjectGrade


@admin.register(SubjectGrade)
class SubjectGradeAdmin(admin.ModelAdmin):
    list_display = ['student', 'subject', 'first_term', 'mid_year', 'second_term', 'final_exam_1st', 'final_exam_2nd']
    list_filter = ['subject', 'student__current_class']
    search_fields = ['student__first_name', 'student__last_name']
    raw_id_fields = ['student']


@admin.register(PublishedResult)
class PublishedResultAdmin(admin.ModelAdmin):
    list_display = ['student', 'result_key', 'status', 'published_at']
    list_filter = ['result_key', 'status']
    readonly_fields = ['payload', 'published_at']
