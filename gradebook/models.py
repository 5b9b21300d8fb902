import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from academics.models import Subject
from core.choices import ResultKey, ResultStatus
from students.models import Student

from .engine import Mark, MonthlyMarks, SubjectGrade as EngineSubjectGrade, TermScheme, derive_terms
from .engine.marks import ABSENT_CODE, EXCUSED_CODE

MARK_FIELDS = ('first_term', 'mid_year', 'second_term', 'final_exam_1st', 'final_exam_2nd')
MONTH_FIELDS = (
    'first_sem_month_1', 'first_sem_month_2', 'second_sem_month_1', 'second_sem_month_2',
    'october', 'november', 'december', 'january', 'february', 'march', 'april',
)
ALL_MARK_FIELDS = MARK_FIELDS + MONTH_FIELDS


def validate_mark(value):
    """Allow a score within 0-100 or one of the attendance codes."""
    if value is None or value in (ABSENT_CODE, EXCUSED_CODE):
        return
    if value < 0 or value > 100:
        raise ValidationError(
            f'Mark ({value}) must be between 0 and 100, '
            f'or {ABSENT_CODE} (absent) / {EXCUSED_CODE} (excused)'
        )


def mark_field(label):
    return models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[validate_mark],
        help_text=f'{label} (empty = not entered, {ABSENT_CODE} = absent, {EXCUSED_CODE} = excused)'
    )


class SubjectGrade(models.Model):
    """
    Raw marks of one student in one subject for the academic year.

    Derived grades are never stored here; they are recalculated from these
    marks by the result engine whenever they are needed.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='subject_grades',
        db_index=True
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='student_grades',
        db_index=True
    )
    first_term = mark_field('First term')
    mid_year = mark_field('Mid-year exam')
    second_term = mark_field('Second term')
    final_exam_1st = mark_field('Final exam, first round')
    final_exam_2nd = mark_field('Completion exam, second round')

    # Monthly marks; an unset first or second term is built from these
    first_sem_month_1 = mark_field('First semester, month 1')
    first_sem_month_2 = mark_field('First semester, month 2')
    second_sem_month_1 = mark_field('Second semester, month 1')
    second_sem_month_2 = mark_field('Second semester, month 2')
    october = mark_field('October (primary)')
    november = mark_field('November (primary)')
    december = mark_field('December (primary)')
    january = mark_field('January (primary)')
    february = mark_field('February (primary)')
    march = mark_field('March (primary)')
    april = mark_field('April (primary)')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student} - {self.subject.name}"

    def save(self, *args, **kwargs):
        self.full_clean(exclude=['student', 'subject'], validate_unique=False)
        super().save(*args, **kwargs)

    def get_mark(self, field_name):
        if field_name not in ALL_MARK_FIELDS:
            raise ValueError(f'Unknown mark field: {field_name}')
        return Mark.from_raw(getattr(self, field_name))

    def set_mark(self, field_name, mark):
        if field_name not in ALL_MARK_FIELDS:
            raise ValueError(f'Unknown mark field: {field_name}')
        raw = mark.to_raw()
        setattr(self, field_name, None if raw is None else Decimal(str(raw)))

    def monthly_marks(self):
        return MonthlyMarks(**{name: self.get_mark(name) for name in MONTH_FIELDS})

    def to_engine(self, subject_name=None, term_scheme=TermScheme.SEMESTER):
        """
        Convert to the engine's SubjectGrade.

        First and second term marks that were not entered directly are built
        from the monthly marks under the given scheme.
        """
        grade = EngineSubjectGrade(
            subject=subject_name or self.subject.name,
            **{name: self.get_mark(name) for name in MARK_FIELDS}
        )
        return derive_terms(grade, self.monthly_marks(), term_scheme)

    class Meta:
        db_table = 'subject_grade'
        ordering = ['student', 'subject']
        verbose_name = 'Subject Grade'
        verbose_name_plural = 'Subject Grades'
        unique_together = ['student', 'subject']


class PublishedResult(models.Model):
    """
    Snapshot of one result column published for a student to see.
    Republishing the same column overwrites the snapshot.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='published_results',
        db_index=True
    )
    result_key = models.CharField(max_length=20, choices=ResultKey.choices)
    status = models.CharField(
        max_length=20,
        choices=ResultStatus.choices,
        blank=True,
        help_text='Overall result, only set for the final grade column'
    )
    message = models.CharField(max_length=200, blank=True)
    payload = models.JSONField(default=dict)
    published_at = models.DateTimeField()

    def __str__(self):
        return f"{self.student} - {self.get_result_key_display()}"

    class Meta:
        db_table = 'published_result'
        ordering = ['student', 'result_key']
        verbose_name = 'Published Result'
        verbose_name_plural = 'Published Results'
        unique_together = ['student', 'result_key']
