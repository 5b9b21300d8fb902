from django.contrib import admin

from .models import SchoolSettings


@admin.register(SchoolSettings)
class SchoolSettingsAdmin(admin.ModelAdmin):
    fieldsets = (
        ('School', {'fields': ('school_name', 'principal_name', 'academic_year', 'school_level')}),
        ('Grading regulation', {
            'fields': ('decision_points', 'supplementary_subjects_count', 'points_per_subject_cap')
        }),
    )

    def has_add_permission(self, request):
        return not SchoolSettings.objects.exists()
