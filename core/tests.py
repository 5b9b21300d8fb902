from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.test import TestCase, override_settings

from core.choices import SchoolLevel
from core.models import SchoolSettings
from gradebook.engine import TermScheme


class SchoolSettingsTests(TestCase):
    """Tests for the SchoolSettings singleton and its grading policy."""

    def setUp(self):
        cache.clear()

    def test_load_creates_defaults(self):
        settings_obj = SchoolSettings.load()
        self.assertEqual(settings_obj.pk, 1)
        self.assertEqual(settings_obj.decision_points, 10)
        self.assertEqual(settings_obj.supplementary_subjects_count, 3)
        self.assertEqual(settings_obj.points_per_subject_cap, 5)

    def test_save_forces_single_row(self):
        SchoolSettings.objects.create(school_name='First')
        SchoolSettings(school_name='Second').save()
        self.assertEqual(SchoolSettings.objects.count(), 1)
        self.assertEqual(SchoolSettings.objects.get().school_name, 'Second')

    def test_save_clears_cache(self):
        SchoolSettings.load()
        settings_obj = SchoolSettings.objects.get(pk=1)
        settings_obj.decision_points = 7
        settings_obj.save()
        self.assertEqual(SchoolSettings.load().decision_points, 7)

    def test_grading_policy_from_settings(self):
        settings_obj = SchoolSettings.objects.create(
            decision_points=6, supplementary_subjects_count=2, points_per_subject_cap=4
        )
        policy = settings_obj.get_grading_policy()
        self.assertEqual(policy.max_total_decision_points, 6)
        self.assertEqual(policy.max_subjects_eligible_for_decision, 2)
        self.assertEqual(policy.points_per_subject_cap, 4)
        self.assertEqual(policy.pass_threshold, 50)

    @override_settings(GRADEBOOK_PASS_THRESHOLD=60)
    def test_pass_threshold_from_django_settings(self):
        self.assertEqual(SchoolSettings.load().get_grading_policy().pass_threshold, 60)

    def test_invalid_policy_is_improperly_configured(self):
        settings_obj = SchoolSettings(decision_points=-1)
        with self.assertRaises(ImproperlyConfigured):
            settings_obj.get_grading_policy()

    def test_invalid_policy_fails_validation(self):
        settings_obj = SchoolSettings(points_per_subject_cap=-2)
        with self.assertRaises(ValidationError):
            settings_obj.full_clean()
        with self.assertRaises(ValidationError):
            settings_obj.clean()

    def test_term_scheme_follows_school_level(self):
        settings_obj = SchoolSettings.load()
        self.assertEqual(settings_obj.term_scheme, TermScheme.SEMESTER)

        settings_obj.school_level = SchoolLevel.PRIMARY
        settings_obj.save()
        self.assertEqual(SchoolSettings.load().term_scheme, TermScheme.PRIMARY)
