from django.contrib import admin

from .models import Class, ClassSubject, Subject


class ClassSubjectInline(admin.TabularInline):
    model = ClassSubject
    extra = 1
    ordering = ['order']


@admin.register(Class)
class ClassAdmin(admin.ModelAdmin):
    list_display = ['stage', 'section', 'is_active']
    list_filter = ['is_active']
    inlines = [ClassSubjectInline]


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active']
    search_fields = ['name']
