from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from gradebook import config as gradebook_config
from gradebook.engine import GradingPolicy, PolicyConfigurationError, TermScheme

from .choices import SchoolLevel


class SchoolSettings(models.Model):
    """
    Stores configuration specific to this School, including the grading
    regulation applied when results are calculated.
    """
    # Identity
    school_name = models.CharField(max_length=200, blank=True)
    principal_name = models.CharField(max_length=200, blank=True)
    academic_year = models.CharField(max_length=20, blank=True, help_text="e.g. 2023-2024")
    school_level = models.CharField(
        max_length=20,
        choices=SchoolLevel.choices,
        default=SchoolLevel.INTERMEDIATE,
        help_text="Primary schools build term marks from the monthly marks of October to April",
    )

    # Grading regulation
    decision_points = models.IntegerField(
        default=10,
        validators=[MinValueValidator(0)],
        help_text="Total grace points a single student may be granted"
    )
    supplementary_subjects_count = models.IntegerField(
        default=3,
        validators=[MinValueValidator(0)],
        help_text="Maximum failing subjects that may receive grace points or be sat in the completion round"
    )
    points_per_subject_cap = models.IntegerField(
        default=5,
        validators=[MinValueValidator(0)],
        help_text="Maximum grace points a single subject may receive"
    )

    updated_at = models.DateTimeField(auto_now=True)

    def clean(self):
        """Reject grading values the result engine cannot work with."""
        try:
            self._build_policy()
        except PolicyConfigurationError as e:
            raise ValidationError(str(e))

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)
        cache.delete('school_profile')

    @classmethod
    def load(cls):
        profile = cache.get('school_profile')
        if profile is None:
            profile, created = cls.objects.get_or_create(pk=1)
            cache.set('school_profile', profile, 60*60*24)
        return profile

    def _build_policy(self):
        return GradingPolicy(
            max_total_decision_points=self.decision_points,
            max_subjects_eligible_for_decision=self.supplementary_subjects_count,
            points_per_subject_cap=self.points_per_subject_cap,
            pass_threshold=gradebook_config.PASS_THRESHOLD,
        )

    @property
    def term_scheme(self):
        """Primary schools build terms from the October-January and February-April marks."""
        if self.school_level == SchoolLevel.PRIMARY:
            return TermScheme.PRIMARY
        return TermScheme.SEMESTER

    def get_grading_policy(self):
        """
        Build the engine's GradingPolicy from these settings.

        Raises:
            ImproperlyConfigured: if the stored values are not a usable policy
        """
        try:
            return self._build_policy()
        except PolicyConfigurationError as e:
            raise ImproperlyConfigured(f"Invalid grading policy in school settings: {e}")

    class Meta:
        verbose_name = "School Settings"
        verbose_name_plural = "School Settings"

    def __str__(self):
        return "School Profile & Settings"
