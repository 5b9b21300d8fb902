from django.db import models
from django.utils.translation import gettext_lazy as _


class ResultStatus(models.TextChoices):
    PASS = 'PASS', _('Pass')
    MUST_SIT_COMPLETION = 'COMPLETION', _('Must sit completion exam')
    FAIL = 'FAIL', _('Fail')
    PENDING = 'PENDING', _('Pending')


class ResultKey(models.TextChoices):
    """Result columns that can be published to students."""
    FIRST_SEM_MONTH_1 = 'first_sem_month_1', _('First semester, month 1')
    FIRST_SEM_MONTH_2 = 'first_sem_month_2', _('First semester, month 2')
    FIRST_SEM_AVG = 'first_sem_avg', _('First semester average')
    FIRST_TERM = 'first_term', _('First term')
    MID_YEAR = 'mid_year', _('Mid-year')
    SECOND_SEM_MONTH_1 = 'second_sem_month_1', _('Second semester, month 1')
    SECOND_SEM_MONTH_2 = 'second_sem_month_2', _('Second semester, month 2')
    SECOND_SEM_AVG = 'second_sem_avg', _('Second semester average')
    SECOND_TERM = 'second_term', _('Second term')
    ANNUAL_PURSUIT = 'annual_pursuit', _('Annual pursuit')
    FINAL_GRADE = 'final_grade', _('Final grade')


class SchoolLevel(models.TextChoices):
    PRIMARY = 'PRIMARY', _('Primary')
    INTERMEDIATE = 'INTERMEDIATE', _('Intermediate')
    PREPARATORY = 'PREPARATORY', _('Preparatory')
