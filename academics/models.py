from django.db import models
from django.utils.translation import gettext_lazy as _


class Class(models.Model):
    """
    Represents a class/classroom grouping of students.
    Name format: stage and section, e.g. "First Intermediate - A".
    """
    stage = models.CharField(
        max_length=50,
        help_text="e.g., First Intermediate, Sixth Primary"
    )
    section = models.CharField(
        max_length=5,
        help_text="A, B, C, etc."
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['stage', 'section']
        verbose_name = "Class"
        verbose_name_plural = "Classes"
        unique_together = ['stage', 'section']

    def __str__(self):
        return self.name

    @property
    def name(self):
        return f"{self.stage} - {self.section}"

    def get_subjects(self):
        """Subjects of this class in their configured order."""
        return [
            allocation.subject
            for allocation in self.subjects.select_related('subject').order_by('order', 'pk')
        ]


class Subject(models.Model):
    """
    Represents a subject taught at the school.
    """
    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="e.g., Mathematics, Arabic Language, Islamic Education"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Subject"
        verbose_name_plural = "Subjects"

    def __str__(self):
        return self.name


class ClassSubject(models.Model):
    """
    Links a Class to a Subject. The order is the order subjects appear on
    grade sheets and breaks ties when grace points are allocated.
    """
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='subjects'
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='class_allocations'
    )
    order = models.PositiveSmallIntegerField(
        default=0,
        help_text=_("Display order (lower numbers appear first)")
    )

    class Meta:
        unique_together = ['class_assigned', 'subject']
        ordering = ['order', 'pk']
        verbose_name = "Subject Allocation"
        verbose_name_plural = "Subject Allocations"

    def __str__(self):
        return f"{self.subject.name} - {self.class_assigned.name}"
