import json
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from academics.models import Class, ClassSubject, Subject
from core.choices import ResultKey, ResultStatus, SchoolLevel
from core.models import SchoolSettings
from students.models import Student

from .engine import (
    ABSENT, EXCUSED, UNSET, CalculatedGrade, GradingPolicy, Mark, MonthlyMarks,
    PolicyConfigurationError, SubjectGrade as EngineSubjectGrade, TermScheme,
    aggregate, allocate, apply_decisions, calculate_student_result, classify,
    column_statistics, compute, derive_terms, resolve_completion, round_half_up,
    subject_report, term_averages,
)
from .exports import build_class_workbook
from .models import PublishedResult, SubjectGrade
from .services import (
    calculate_class_results, calculate_student_outcome, exam_order_key, publish_results,
    record_exam_attendance, withdraw_results,
)
from .tasks import calculate_class_results_task, publish_class_results_task


def make_policy(pool=5, max_subjects=3, cap=5):
    return GradingPolicy(
        max_total_decision_points=pool,
        max_subjects_eligible_for_decision=max_subjects,
        points_per_subject_cap=cap,
    )


def raw_grade(subject, first_term=None, mid_year=None, second_term=None, exam_1st=None, exam_2nd=None):
    """Engine SubjectGrade from persisted-style raw values."""
    return EngineSubjectGrade(
        subject,
        Mark.from_raw(first_term),
        Mark.from_raw(mid_year),
        Mark.from_raw(second_term),
        Mark.from_raw(exam_1st),
        Mark.from_raw(exam_2nd),
    )


def first_round(subject, grade, exempt=False):
    """CalculatedGrade as it looks before decisions are applied."""
    if exempt:
        return CalculatedGrade(subject=subject, is_exempt=True)
    return CalculatedGrade(subject=subject, annual_pursuit=grade, final_grade_1st=grade)


def final(subject, grade, **kwargs):
    return CalculatedGrade(subject=subject, final_grade_1st=grade, final_grade_with_decision=grade, **kwargs)


STATUS_RANK = {
    ResultStatus.FAIL: 0,
    ResultStatus.MUST_SIT_COMPLETION: 1,
    ResultStatus.PASS: 2,
}


class MarkTest(SimpleTestCase):
    """Tests for decoding persisted marks."""

    def test_decodes_sentinels(self):
        self.assertEqual(Mark.from_raw(None), UNSET)
        self.assertEqual(Mark.from_raw(''), UNSET)
        self.assertEqual(Mark.from_raw(-1), ABSENT)
        self.assertEqual(Mark.from_raw(Decimal('-2.00')), EXCUSED)

    def test_decodes_scores(self):
        mark = Mark.from_raw(75)
        self.assertTrue(mark.is_score)
        self.assertEqual(mark.value, Decimal('75'))
        self.assertEqual(mark.to_raw(), 75)
        self.assertEqual(Mark.from_raw('62.5').to_raw(), 62.5)

    def test_sentinels_encode_back(self):
        self.assertEqual(ABSENT.to_raw(), -1)
        self.assertEqual(EXCUSED.to_raw(), -2)
        self.assertIsNone(UNSET.to_raw())

    def test_out_of_range_is_clamped_and_logged(self):
        with self.assertLogs('gradebook.engine.marks', level='WARNING') as logs:
            high = Mark.from_raw(120)
            low = Mark.from_raw(-7)
        self.assertEqual(high.value, Decimal('100'))
        self.assertEqual(low.value, Decimal('0'))
        self.assertEqual(len(logs.output), 2)

    def test_garbage_is_rejected(self):
        with self.assertRaises(ValueError):
            Mark.from_raw('abc')

    def test_non_finite_numbers_are_rejected(self):
        for raw in ('NaN', 'Infinity', '-Infinity', float('nan')):
            with self.assertRaises(ValueError):
                Mark.from_raw(raw)
        with self.assertRaises(ValueError):
            Mark.score('NaN')

    def test_only_scores_carry_values(self):
        with self.assertRaises(ValueError):
            Mark(ABSENT.kind, Decimal('3'))


class GradingPolicyTest(SimpleTestCase):

    def test_defaults_to_fifty(self):
        self.assertEqual(make_policy().pass_threshold, 50)

    def test_negative_pool_rejected(self):
        with self.assertRaises(PolicyConfigurationError):
            make_policy(pool=-1)

    def test_negative_caps_rejected(self):
        with self.assertRaises(PolicyConfigurationError):
            make_policy(max_subjects=-1)
        with self.assertRaises(PolicyConfigurationError):
            make_policy(cap=-3)

    def test_threshold_out_of_range_rejected(self):
        with self.assertRaises(PolicyConfigurationError):
            GradingPolicy(5, 3, 5, pass_threshold=150)


class TermAggregatorTest(SimpleTestCase):
    """Tests for annual pursuit and first-round final calculation."""

    def test_documented_example(self):
        grade = compute(raw_grade('Math', 60, 70, 80, 40))
        self.assertEqual(grade.annual_pursuit, 70)
        self.assertEqual(grade.final_grade_1st, 55)
        self.assertEqual(grade.decision_applied, 0)
        self.assertIsNone(grade.final_grade_with_decision)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(Decimal('56.5')), 57)
        self.assertEqual(round_half_up(Decimal('47.5')), 48)
        self.assertEqual(round_half_up(Decimal('47.49')), 47)
        # (70 + 43) / 2 = 56.5
        self.assertEqual(compute(raw_grade('Math', 70, 70, 70, 43)).final_grade_1st, 57)

    def test_rounds_once_per_step(self):
        # Pursuit 48.67 rounds to 49 before it is averaged with the exam
        grade = compute(raw_grade('Math', 48, 49, 49, 50))
        self.assertEqual(grade.annual_pursuit, 49)
        self.assertEqual(grade.final_grade_1st, 50)

    def test_fractional_scores(self):
        grade = compute(raw_grade('Math', '60.5', 70, 80, 70))
        self.assertEqual(grade.annual_pursuit, 70)

    def test_missing_term_leaves_everything_null(self):
        grade = compute(raw_grade('Math', 60, None, 80, 70))
        self.assertIsNone(grade.annual_pursuit)
        self.assertIsNone(grade.final_grade_1st)
        self.assertFalse(grade.is_exempt)

    def test_missing_exam_keeps_pursuit(self):
        grade = compute(raw_grade('Math', 60, 70, 80))
        self.assertEqual(grade.annual_pursuit, 70)
        self.assertIsNone(grade.final_grade_1st)

    def test_absent_term_fails_subject(self):
        grade = compute(raw_grade('Math', 90, -1, 90, 90))
        self.assertEqual(grade.annual_pursuit, 0)
        self.assertEqual(grade.final_grade_1st, 0)
        self.assertTrue(grade.is_absent)
        self.assertFalse(grade.is_exempt)

    def test_absent_term_fails_even_with_missing_terms(self):
        grade = compute(raw_grade('Math', None, -1, None))
        self.assertEqual(grade.final_grade_1st, 0)

    def test_absent_exam_counts_as_zero(self):
        grade = compute(raw_grade('Math', 60, 70, 80, -1))
        self.assertEqual(grade.annual_pursuit, 70)
        self.assertEqual(grade.final_grade_1st, 35)
        self.assertTrue(grade.is_absent)

    def test_excused_exempts_subject(self):
        grade = compute(raw_grade('Math', 60, -2, 80, 70))
        self.assertTrue(grade.is_exempt)
        self.assertIsNone(grade.annual_pursuit)
        self.assertIsNone(grade.final_grade_1st)

    def test_excused_wins_over_absent(self):
        grade = compute(raw_grade('Math', -1, 70, 80, -2))
        self.assertTrue(grade.is_exempt)
        self.assertFalse(grade.is_absent)

    def test_passing_inputs_never_fail(self):
        policy = make_policy()
        for term in (50, 63, 77, 100):
            for exam in (50, 58, 91):
                calculated = {
                    'Math': compute(raw_grade('Math', term, term, term, exam)),
                    'Arabic': first_round('Arabic', 40),
                }
                self.assertGreaterEqual(calculated['Math'].final_grade_1st, 50)
                self.assertEqual(allocate(calculated, policy)['Math'], 0)


class DecisionPointAllocatorTest(SimpleTestCase):
    """Tests for grace point allocation."""

    def test_documented_example(self):
        calculated = {
            'Math': first_round('Math', 47),
            'Arabic': first_round('Arabic', 80),
            'Science': first_round('Science', 60),
        }
        allocations = allocate(calculated, make_policy(pool=5, max_subjects=3, cap=5))
        self.assertEqual(allocations, {'Math': 3, 'Arabic': 0, 'Science': 0})

        decided = apply_decisions(calculated, allocations)
        self.assertEqual(decided['Math'].final_grade_with_decision, 50)
        self.assertEqual(decided['Arabic'].final_grade_with_decision, 80)
        self.assertEqual(classify(decided.values(), make_policy()).status, ResultStatus.PASS)

    def test_everything_failing_is_not_eligible(self):
        calculated = {'Math': first_round('Math', 48), 'Arabic': first_round('Arabic', 49)}
        self.assertEqual(allocate(calculated, make_policy()), {'Math': 0, 'Arabic': 0})

    def test_nothing_failing_grants_nothing(self):
        calculated = {'Math': first_round('Math', 58), 'Arabic': first_round('Arabic', 90)}
        self.assertEqual(allocate(calculated, make_policy()), {'Math': 0, 'Arabic': 0})

    def test_cheapest_subjects_first(self):
        calculated = {
            'A': first_round('A', 46),
            'B': first_round('B', 48),
            'C': first_round('C', 49),
            'D': first_round('D', 70),
        }
        allocations = allocate(calculated, make_policy(pool=5, max_subjects=3, cap=5))
        # C (1) and B (2) fit; A (4) would exceed the pool of 5
        self.assertEqual(allocations, {'A': 0, 'B': 2, 'C': 1, 'D': 0})

    def test_ties_follow_subject_order(self):
        calculated = {
            'Arabic': first_round('Arabic', 48),
            'Math': first_round('Math', 48),
            'Science': first_round('Science', 90),
        }
        allocations = allocate(calculated, make_policy(pool=2))
        self.assertEqual(allocations['Arabic'], 2)
        self.assertEqual(allocations['Math'], 0)

    def test_subject_count_cap(self):
        calculated = {name: first_round(name, 49) for name in 'ABCD'}
        calculated['E'] = first_round('E', 90)
        allocations = allocate(calculated, make_policy(pool=10, max_subjects=3))
        self.assertEqual(allocations, {'A': 1, 'B': 1, 'C': 1, 'D': 0, 'E': 0})

    def test_no_partial_grant_over_subject_cap(self):
        calculated = {'Math': first_round('Math', 40), 'Arabic': first_round('Arabic', 90)}
        self.assertEqual(allocate(calculated, make_policy(pool=20, cap=5))['Math'], 0)

    def test_no_partial_grant_over_pool(self):
        calculated = {'Math': first_round('Math', 45), 'Arabic': first_round('Arabic', 90)}
        self.assertEqual(allocate(calculated, make_policy(pool=4, cap=5))['Math'], 0)

    def test_exempt_and_pending_subjects_ignored(self):
        calculated = {
            'Art': first_round('Art', None, exempt=True),
            'History': first_round('History', None),
            'Math': first_round('Math', 48),
            'Arabic': first_round('Arabic', 70),
        }
        allocations = allocate(calculated, make_policy())
        self.assertEqual(allocations, {'Art': 0, 'History': 0, 'Math': 2, 'Arabic': 0})

        decided = apply_decisions(calculated, allocations)
        self.assertIsNone(decided['History'].final_grade_with_decision)
        self.assertIsNone(decided['Art'].final_grade_with_decision)

    def test_pool_conservation_and_exact_grants(self):
        policy = make_policy(pool=7, max_subjects=2, cap=4)
        cases = [
            [45, 46, 47, 48, 49, 90],
            [49, 49, 49, 60],
            [30, 49, 48, 75],
            [47, 46, 50],
        ]
        for finals in cases:
            calculated = {f'S{i}': first_round(f'S{i}', g) for i, g in enumerate(finals)}
            allocations = allocate(calculated, policy)
            self.assertLessEqual(sum(allocations.values()), policy.max_total_decision_points)
            self.assertLessEqual(
                len([p for p in allocations.values() if p > 0]),
                policy.max_subjects_eligible_for_decision
            )
            for subject, points in allocations.items():
                if points:
                    self.assertEqual(calculated[subject].final_grade_1st + points, 50)


class PromotionClassifierTest(SimpleTestCase):
    """Tests for the first-round status decision."""

    def setUp(self):
        self.policy = make_policy(max_subjects=3)

    def test_no_subjects_is_pending(self):
        result = classify([], self.policy)
        self.assertEqual(result.status, ResultStatus.PENDING)
        self.assertEqual(result.message, 'قيد الانتظار')

    def test_missing_final_is_pending_regardless_of_failures(self):
        grades = [final('Math', None), final('Arabic', 10), final('Science', 20),
                  final('History', 5), final('Art', 0)]
        self.assertEqual(classify(grades, self.policy).status, ResultStatus.PENDING)

    def test_all_passing(self):
        result = classify([final('Math', 50), final('Arabic', 99)], self.policy)
        self.assertEqual(result.status, ResultStatus.PASS)
        self.assertEqual(result.message, 'ناجح')

    def test_pass_by_decision(self):
        grades = [CalculatedGrade('Math', final_grade_1st=47, decision_applied=3, final_grade_with_decision=50),
                  final('Arabic', 80)]
        result = classify(grades, self.policy)
        self.assertEqual(result.status, ResultStatus.PASS)
        self.assertEqual(result.message, 'ناجح بقرار')

    def test_completion_names_failing_subjects(self):
        grades = [final('Math', 40), final('Arabic', 80), final('Science', 30)]
        result = classify(grades, self.policy)
        self.assertEqual(result.status, ResultStatus.MUST_SIT_COMPLETION)
        self.assertEqual(result.failing_subjects, ('Math', 'Science'))
        self.assertEqual(result.message, 'مكمل في: Math، Science')

    def test_too_many_failures_is_fail(self):
        grades = [final('A', 49), final('B', 49), final('C', 49), final('D', 49), final('E', 90)]
        result = classify(grades, self.policy)
        self.assertEqual(result.status, ResultStatus.FAIL)
        self.assertEqual(len(result.failing_subjects), 4)

    def test_exempt_subjects_ignored(self):
        grades = [final('Math', 70), CalculatedGrade('Art', is_exempt=True)]
        self.assertEqual(classify(grades, self.policy).status, ResultStatus.PASS)

    def test_all_exempt_is_pending(self):
        grades = [CalculatedGrade('Art', is_exempt=True)]
        self.assertEqual(classify(grades, self.policy).status, ResultStatus.PENDING)

    def test_absence_counts_as_failure(self):
        decided = apply_decisions({
            'Math': compute(raw_grade('Math', -1, 80, 80, 80)),
            'Arabic': compute(raw_grade('Arabic', 80, 80, 80, 80)),
        }, {})
        result = classify(decided.values(), self.policy)
        self.assertEqual(result.status, ResultStatus.MUST_SIT_COMPLETION)
        self.assertEqual(result.failing_subjects, ('Math',))


class SupplementaryResolverTest(SimpleTestCase):
    """Tests for the completion exam round."""

    def setUp(self):
        self.policy = make_policy()
        self.grades = {
            'Math': final('Math', 40),
            'Science': final('Science', 45),
            'Arabic': final('Arabic', 70),
        }

    def test_passing_completion_exams(self):
        updated, result = resolve_completion(
            self.grades, {'Math': Mark.score(60), 'Science': Mark.score(51)}, self.policy
        )
        self.assertEqual(result.status, ResultStatus.PASS)
        self.assertTrue(result.completion_round)
        self.assertEqual(updated['Math'].final_grade_2nd, 60)
        # The completion score replaces the final outright
        self.assertEqual(updated['Science'].final_grade_2nd, 51)
        self.assertIsNone(updated['Arabic'].final_grade_2nd)
        self.assertEqual(updated['Arabic'].effective_final, 70)

    def test_still_failing_is_final_fail(self):
        updated, result = resolve_completion(
            self.grades, {'Math': Mark.score(60), 'Science': Mark.score(30)}, self.policy
        )
        self.assertEqual(result.status, ResultStatus.FAIL)
        self.assertEqual(result.failing_subjects, ('Science',))
        self.assertEqual(result.message, 'راسب في: Science')

    def test_missing_completion_mark_fails(self):
        _, result = resolve_completion(self.grades, {'Math': Mark.score(80)}, self.policy)
        self.assertEqual(result.status, ResultStatus.FAIL)

    def test_absent_and_excused_completion(self):
        updated, result = resolve_completion(self.grades, {'Math': ABSENT, 'Science': EXCUSED}, self.policy)
        self.assertEqual(updated['Math'].final_grade_2nd, 0)
        self.assertTrue(updated['Science'].is_exempt)
        self.assertEqual(result.failing_subjects, ('Math',))

        updated, result = resolve_completion(self.grades, {'Math': Mark.score(55), 'Science': EXCUSED}, self.policy)
        self.assertEqual(result.status, ResultStatus.PASS)

    def test_passed_subjects_are_not_retaken(self):
        updated, _ = resolve_completion(
            self.grades,
            {'Math': Mark.score(60), 'Science': Mark.score(60), 'Arabic': Mark.score(10)},
            self.policy
        )
        self.assertIsNone(updated['Arabic'].final_grade_2nd)


class CalculateStudentResultTest(SimpleTestCase):
    """Tests for the full pipeline."""

    def setUp(self):
        self.policy = make_policy(pool=5, max_subjects=3, cap=5)

    def test_pass_with_decision_summary(self):
        outcome = calculate_student_result([
            raw_grade('Math', 50, 50, 50, 44),
            raw_grade('Arabic', 70, 70, 70, 70),
        ], self.policy)
        self.assertEqual(outcome.grades['Math'].final_grade_1st, 47)
        self.assertEqual(outcome.grades['Math'].decision_applied, 3)
        self.assertEqual(outcome.result.status, ResultStatus.PASS)
        self.assertEqual(outcome.decisions.amount_granted, 3)
        self.assertEqual(outcome.decisions.subjects, (('Math', 3),))
        self.assertEqual(outcome.decisions.remaining_points, 2)

    def test_waits_for_all_completion_marks(self):
        grades = [
            raw_grade('Math', 30, 30, 30, 30, 70),
            raw_grade('Science', 30, 30, 30, 30),
            raw_grade('Arabic', 70, 70, 70, 70),
        ]
        outcome = calculate_student_result(grades, self.policy)
        self.assertEqual(outcome.result.status, ResultStatus.MUST_SIT_COMPLETION)
        self.assertIsNone(outcome.grades['Math'].final_grade_2nd)

    def test_resolves_completion_round(self):
        grades = [
            raw_grade('Math', 30, 30, 30, 30, 70),
            raw_grade('Science', 30, 30, 30, 30, 64),
            raw_grade('Arabic', 70, 70, 70, 70),
        ]
        outcome = calculate_student_result(grades, self.policy)
        self.assertEqual(outcome.result.status, ResultStatus.PASS)
        self.assertTrue(outcome.result.completion_round)
        self.assertEqual(outcome.grades['Science'].effective_final, 64)

    def test_pending_while_entering(self):
        outcome = calculate_student_result([
            raw_grade('Math', 10, 10, 10, 10),
            raw_grade('Arabic', 70, 70, None, None),
        ], self.policy)
        self.assertEqual(outcome.result.status, ResultStatus.PENDING)

    def test_keeps_subject_order(self):
        outcome = calculate_student_result([
            raw_grade('Science', 70, 70, 70, 70),
            raw_grade('Arabic', 70, 70, 70, 70),
        ], self.policy)
        self.assertEqual([g.subject for g in outcome.ordered_grades()], ['Science', 'Arabic'])

    def test_identical_inputs_identical_output(self):
        grades = [
            raw_grade('Math', 50, 50, 50, 44),
            raw_grade('Science', 30, -1, 30, 30),
            raw_grade('Art', -2, 70, 70, 70),
            raw_grade('Arabic', 70, 70, 70, 70),
        ]
        first = json.dumps(calculate_student_result(grades, self.policy).to_dict(), ensure_ascii=False)
        second = json.dumps(calculate_student_result(grades, self.policy).to_dict(), ensure_ascii=False)
        self.assertEqual(first, second)

    def test_outcome_is_hashable(self):
        outcome = calculate_student_result([raw_grade('Math', 70, 70, 70, 70)], self.policy)
        self.assertIn(outcome, {outcome})

    def test_raising_a_score_never_worsens_the_result(self):
        others = [
            raw_grade('Arabic', 70, 70, 70, 70),
            raw_grade('Science', 44, 44, 44, 44),
            raw_grade('History', 46, 46, 46, 46),
            raw_grade('English', 40, 40, 40, 40),
        ]
        previous_rank = None
        previous_final = None
        for term in range(0, 101, 4):
            outcome = calculate_student_result([raw_grade('Math', term, 40, 40, 40)] + others, self.policy)
            rank = STATUS_RANK[outcome.result.status]
            math = outcome.grades['Math']
            if previous_rank is not None:
                self.assertGreaterEqual(rank, previous_rank)
                self.assertGreaterEqual(math.final_grade_with_decision, previous_final)
            previous_rank = rank
            previous_final = math.final_grade_with_decision

    def test_excused_subject_is_exempt_and_absent_subject_fails(self):
        outcome = calculate_student_result([
            raw_grade('Art', 70, -2, 70, 70),
            raw_grade('Math', -1, 70, 70, 70),
            raw_grade('Arabic', 70, 70, 70, 70),
        ], self.policy)
        self.assertTrue(outcome.grades['Art'].is_exempt)
        self.assertFalse(outcome.grades['Math'].is_exempt)
        self.assertEqual(outcome.result.failing_subjects, ('Math',))


class TermsFromMonthsTest(SimpleTestCase):
    """Tests for building term marks out of monthly marks."""

    def months(self, **raw):
        return MonthlyMarks(**{name: Mark.from_raw(value) for name, value in raw.items()})

    def test_semester_average(self):
        monthly = self.months(first_sem_month_1=60, first_sem_month_2=71,
                              second_sem_month_1=80, second_sem_month_2=80)
        # (60 + 71) / 2 = 65.5
        self.assertEqual(term_averages(monthly), (Mark.score(66), Mark.score(80)))

    def test_semester_waits_for_both_months(self):
        monthly = self.months(first_sem_month_1=60, second_sem_month_2=80)
        self.assertEqual(term_averages(monthly), (UNSET, UNSET))

    def test_attendance_codes_carry_into_term(self):
        monthly = self.months(first_sem_month_1=-1, first_sem_month_2=70,
                              second_sem_month_1=-1, second_sem_month_2=-2)
        self.assertEqual(term_averages(monthly), (ABSENT, EXCUSED))

    def test_primary_averages_entered_months(self):
        monthly = self.months(october=70, december=81, first_sem_month_1=10, first_sem_month_2=10)
        first_term, second_term = term_averages(monthly, TermScheme.PRIMARY)
        self.assertEqual(first_term, Mark.score(76))
        self.assertEqual(second_term, UNSET)

    def test_entered_term_mark_wins(self):
        monthly = self.months(first_sem_month_1=40, first_sem_month_2=40,
                              second_sem_month_1=80, second_sem_month_2=90)
        grade = derive_terms(raw_grade('Math', 90, 70), monthly)
        self.assertEqual(grade.first_term, Mark.score(90))
        self.assertEqual(grade.second_term, Mark.score(85))

    def test_pipeline_from_monthly_marks(self):
        monthly = self.months(first_sem_month_1=60, first_sem_month_2=61,
                              second_sem_month_1=80, second_sem_month_2=80)
        grade = derive_terms(raw_grade('Math', None, 70, None, 60), monthly)
        calculated = compute(grade)
        # Terms 61 and 80 with mid-year 70 give 70.33
        self.assertEqual(calculated.annual_pursuit, 70)
        self.assertEqual(calculated.final_grade_1st, 65)

    def test_absent_primary_month_fails_subject(self):
        monthly = self.months(october=-1, november=90, february=90)
        grade = derive_terms(raw_grade('Math', None, 90, None, 90), monthly, TermScheme.PRIMARY)
        self.assertEqual(compute(grade).final_grade_1st, 0)


class ClassStatisticsTest(SimpleTestCase):
    """Tests for class pass/fail statistics."""

    def setUp(self):
        self.policy = make_policy()

    def test_documented_example(self):
        grades = (
            [final('Math', 60 + i) for i in range(6)]
            + [final('Math', 30), final('Math', 49)]
            + [CalculatedGrade('Math', is_exempt=True) for _ in range(2)]
        )
        stats = aggregate(grades, self.policy)
        self.assertEqual((stats.total, stats.passed, stats.failed, stats.pass_rate), (8, 6, 2, 75))
        self.assertEqual(stats.pass_rate_display, '75%')

    def test_empty_class(self):
        stats = aggregate([], self.policy)
        self.assertEqual(stats.total, 0)
        self.assertEqual(stats.pass_rate, 0)

    def test_pending_entries_not_counted(self):
        stats = aggregate([final('Math', None), final('Math', 70)], self.policy)
        self.assertEqual(stats.total, 1)

    def test_rate_rounding(self):
        self.assertEqual(aggregate([final('M', 70), final('M', 70), final('M', 10)], self.policy).pass_rate, 67)
        grades = [final('M', 70)] + [final('M', 10) for _ in range(7)]
        self.assertEqual(aggregate(grades, self.policy).pass_rate, 13)

    def test_uses_completion_grade(self):
        grade = CalculatedGrade('Math', final_grade_1st=40, final_grade_with_decision=40, final_grade_2nd=65)
        self.assertEqual(aggregate([grade], self.policy).passed, 1)

    def test_raw_column(self):
        marks = [Mark.score(60), Mark.score(40), ABSENT, EXCUSED, UNSET]
        stats = column_statistics(marks, self.policy)
        self.assertEqual((stats.total, stats.passed, stats.failed, stats.pass_rate), (3, 1, 2, 33))

    def test_subject_report_columns(self):
        raws = [raw_grade('Math', 60, 70, 80, 40), raw_grade('Math', 40, 40, -2, 40)]
        calculated = [compute(g).with_decision(0) for g in raws]
        report = subject_report(raws, calculated, self.policy)
        self.assertEqual(
            list(report), ['first_term', 'mid_year', 'second_term', 'annual_pursuit', 'final_grade']
        )
        self.assertEqual(report['first_term'].total, 2)
        self.assertEqual(report['second_term'].total, 1)
        self.assertEqual(report['final_grade'].total, 1)
        self.assertEqual(report['final_grade'].passed, 1)


class GradebookDataMixin:
    """Shared class, subjects and students stored in the database."""

    def setUp(self):
        cache.clear()
        SchoolSettings.objects.create(decision_points=5, supplementary_subjects_count=3, points_per_subject_cap=5)

        self.class_obj = Class.objects.create(stage='First Intermediate', section='A')
        self.math = Subject.objects.create(name='Math')
        self.arabic = Subject.objects.create(name='Arabic')
        self.science = Subject.objects.create(name='Science')
        for order, subject in enumerate([self.math, self.arabic, self.science]):
            ClassSubject.objects.create(class_assigned=self.class_obj, subject=subject, order=order)

        self.passing = Student.objects.create(
            first_name='Ali', last_name='Hassan', exam_id='2', current_class=self.class_obj
        )
        self.by_decision = Student.objects.create(
            first_name='Sara', last_name='Kareem', exam_id='10', current_class=self.class_obj
        )
        self.no_marks = Student.objects.create(
            first_name='Omar', last_name='Jalil', exam_id='1', current_class=self.class_obj
        )

        self.store(self.passing, self.math, 60, 70, 80, 40)
        self.store(self.passing, self.arabic, 70, 70, 70, 70)
        self.store(self.passing, self.science, 48, 49, 49, 50)

        self.store(self.by_decision, self.math, 50, 50, 50, 44)
        self.store(self.by_decision, self.arabic, 70, 70, 70, 70)
        self.store(self.by_decision, self.science, 80, 80, 80, 80)

    def store(self, student, subject, *marks):
        values = dict(zip(['first_term', 'mid_year', 'second_term', 'final_exam_1st', 'final_exam_2nd'], marks))
        return SubjectGrade.objects.create(student=student, subject=subject, **values)


class SubjectGradeModelTest(GradebookDataMixin, TestCase):
    """Tests for SubjectGrade storage."""

    def test_out_of_range_rejected(self):
        with self.assertRaises(ValidationError):
            self.store(self.no_marks, self.math, 150)
        with self.assertRaises(ValidationError):
            self.store(self.no_marks, self.arabic, -3)

    def test_attendance_codes_accepted(self):
        grade = self.store(self.no_marks, self.math, -1, -2)
        engine_grade = grade.to_engine()
        self.assertEqual(engine_grade.subject, 'Math')
        self.assertEqual(engine_grade.first_term, ABSENT)
        self.assertEqual(engine_grade.mid_year, EXCUSED)
        self.assertEqual(engine_grade.second_term, UNSET)

    def test_set_mark(self):
        grade = self.store(self.no_marks, self.math)
        grade.set_mark('final_exam_2nd', Mark.score(64))
        grade.save()
        grade.refresh_from_db()
        self.assertEqual(grade.final_exam_2nd, Decimal('64.00'))

    def test_unknown_field_rejected(self):
        grade = self.store(self.no_marks, self.math)
        with self.assertRaises(ValueError):
            grade.get_mark('homework')


class ResultServicesTest(GradebookDataMixin, TestCase):
    """Tests for class result calculation, publishing and attendance recording."""

    def test_class_results(self):
        results = calculate_class_results(self.class_obj)
        self.assertEqual([s.exam_id for s in results.students], ['1', '2', '10'])

        self.assertEqual(results.outcomes[self.no_marks.id].result.status, ResultStatus.PENDING)
        self.assertEqual(results.outcomes[self.passing.id].result.message, 'ناجح')
        self.assertEqual(results.outcomes[self.by_decision.id].result.message, 'ناجح بقرار')

        log = results.decision_log()
        self.assertEqual([student for student, _ in log], [self.by_decision])

    def test_subject_reports(self):
        reports = calculate_class_results(self.class_obj).subject_reports()
        self.assertEqual(list(reports), ['Math', 'Arabic', 'Science'])
        math = reports['Math']['final_grade']
        self.assertEqual((math.total, math.passed), (2, 2))

    def test_inactive_students_skipped(self):
        self.no_marks.status = Student.Status.WITHDRAWN
        self.no_marks.save()
        results = calculate_class_results(self.class_obj)
        self.assertNotIn(self.no_marks, results.students)

    def test_single_student(self):
        outcome = calculate_student_outcome(self.by_decision)
        self.assertEqual(outcome.decisions.amount_granted, 3)

    def test_publish_final_grade(self):
        published = publish_results(self.class_obj, ResultKey.FINAL_GRADE)
        self.assertEqual(published, 3)

        snapshot = PublishedResult.objects.get(student=self.by_decision, result_key=ResultKey.FINAL_GRADE)
        self.assertEqual(snapshot.status, ResultStatus.PASS)
        self.assertEqual(snapshot.message, 'ناجح بقرار')
        self.assertEqual(
            snapshot.payload['grades'],
            [
                {'subject': 'Math', 'grade': 50},
                {'subject': 'Arabic', 'grade': 70},
                {'subject': 'Science', 'grade': 80},
            ]
        )

    def test_republish_overwrites(self):
        publish_results(self.class_obj, 'first_term')
        publish_results(self.class_obj, 'first_term')
        self.assertEqual(PublishedResult.objects.filter(result_key='first_term').count(), 3)

        snapshot = PublishedResult.objects.get(student=self.passing, result_key='first_term')
        self.assertEqual(snapshot.payload['grades'][0], {'subject': 'Math', 'grade': 60})
        self.assertEqual(snapshot.status, '')

    def test_withdraw(self):
        publish_results(self.class_obj, 'annual_pursuit')
        publish_results(self.class_obj, 'final_grade')
        self.assertEqual(withdraw_results(self.class_obj, 'annual_pursuit'), 3)
        self.assertFalse(PublishedResult.objects.filter(result_key='annual_pursuit').exists())
        self.assertEqual(PublishedResult.objects.filter(result_key='final_grade').count(), 3)

    def test_unknown_result_key(self):
        with self.assertRaises(ValueError):
            publish_results(self.class_obj, 'homework')

    def test_record_exam_attendance(self):
        record_exam_attendance(self.passing, self.math, 'final_exam_1st')
        record_exam_attendance(self.no_marks, self.science, 'mid_year', excused=True)

        self.assertEqual(SubjectGrade.objects.get(student=self.passing, subject=self.math).final_exam_1st, Decimal('-1'))
        self.assertEqual(SubjectGrade.objects.get(student=self.no_marks, subject=self.science).mid_year, Decimal('-2'))

        outcome = calculate_student_outcome(self.passing)
        self.assertEqual(outcome.grades['Math'].final_grade_1st, 35)


    def test_exam_numbers_with_unusual_digits(self):
        self.assertEqual(exam_order_key(Student(exam_id='1²')), (1, 0, '1²'))
        self.assertEqual(exam_order_key(Student(exam_id='١٢')), (0, 12, ''))

        self.no_marks.exam_id = '1²'
        self.no_marks.save()
        results = calculate_class_results(self.class_obj)
        self.assertEqual([s.exam_id for s in results.students], ['2', '10', '1²'])

    def test_terms_from_monthly_marks(self):
        SubjectGrade.objects.create(
            student=self.no_marks, subject=self.math, mid_year=70, final_exam_1st=60,
            first_sem_month_1=60, first_sem_month_2=61, second_sem_month_1=80, second_sem_month_2=80,
        )
        grade = calculate_student_outcome(self.no_marks).grades['Math']
        self.assertEqual(grade.annual_pursuit, 70)
        self.assertEqual(grade.final_grade_1st, 65)

    def test_primary_school_terms(self):
        settings_obj = SchoolSettings.load()
        settings_obj.school_level = SchoolLevel.PRIMARY
        settings_obj.save()
        SubjectGrade.objects.create(
            student=self.no_marks, subject=self.math, mid_year=70, final_exam_1st=70,
            october=70, december=81, february=90,
        )
        grade = calculate_student_outcome(self.no_marks).grades['Math']
        # Terms 76 and 90 with mid-year 70 give 78.67
        self.assertEqual(grade.annual_pursuit, 79)
        self.assertEqual(grade.final_grade_1st, 75)

    def test_publish_monthly_columns(self):
        SubjectGrade.objects.create(
            student=self.no_marks, subject=self.math, first_sem_month_1=60, first_sem_month_2=61,
        )
        publish_results(self.class_obj, ResultKey.FIRST_SEM_MONTH_2)
        publish_results(self.class_obj, ResultKey.FIRST_SEM_AVG)

        month = PublishedResult.objects.get(student=self.no_marks, result_key=ResultKey.FIRST_SEM_MONTH_2)
        self.assertEqual(month.payload['grades'][0], {'subject': 'Math', 'grade': 61})

        average = PublishedResult.objects.get(student=self.no_marks, result_key=ResultKey.FIRST_SEM_AVG)
        self.assertEqual(average.payload['grades'][0], {'subject': 'Math', 'grade': 61})

        other = PublishedResult.objects.get(student=self.passing, result_key=ResultKey.FIRST_SEM_AVG)
        self.assertIsNone(other.payload['grades'][0]['grade'])

    def test_record_monthly_absence(self):
        record_exam_attendance(self.passing, self.math, 'october')
        self.assertEqual(SubjectGrade.objects.get(student=self.passing, subject=self.math).october, Decimal('-1'))


class ResultTasksTest(GradebookDataMixin, TestCase):

    def test_calculate_task(self):
        result = calculate_class_results_task.apply(args=[self.class_obj.pk]).result
        self.assertTrue(result['success'])
        self.assertEqual(result['students'], 3)
        self.assertEqual(result['statuses'], {'PENDING': 1, 'PASS': 2})
        self.assertEqual(result['decisions_granted'], 1)

    def test_missing_class(self):
        result = calculate_class_results_task.apply(args=[999999]).result
        self.assertEqual(result, {'success': False, 'error': 'Class not found'})

    def test_invalid_policy_is_not_retried(self):
        SchoolSettings.objects.filter(pk=1).update(decision_points=-1)
        cache.clear()
        result = calculate_class_results_task.apply(args=[self.class_obj.pk]).result
        self.assertFalse(result['success'])

    def test_publish_task(self):
        result = publish_class_results_task.apply(args=[self.class_obj.pk, 'final_grade']).result
        self.assertEqual(result['published'], 3)


class ExportTest(GradebookDataMixin, TestCase):

    def test_workbook_sheets(self):
        wb = build_class_workbook(calculate_class_results(self.class_obj))
        self.assertEqual(wb.sheetnames, ['Results', 'Statistics', 'Decision Log'])

        results = wb['Results']
        self.assertEqual(results.cell(row=1, column=3).value, 'Math')
        self.assertEqual(results.cell(row=3, column=2).value, 'Ali Hassan')
        self.assertEqual(results.cell(row=3, column=7).value, 'ناجح')

        decisions = wb['Decision Log']
        self.assertEqual(decisions.cell(row=2, column=2).value, 'Sara Kareem')
        self.assertEqual(decisions.cell(row=2, column=4).value, 3)
        self.assertEqual(decisions.cell(row=2, column=5).value, 'Math (+3)')
        self.assertEqual(decisions.cell(row=2, column=6).value, 2)

        statistics = wb['Statistics']
        self.assertEqual(statistics.max_row, 1 + 3 * 5)


class CalculateResultsCommandTest(GradebookDataMixin, TestCase):

    def test_command_output(self):
        out = StringIO()
        call_command('calculate_results', class_id=self.class_obj.pk, publish='final_grade', stdout=out)
        output = out.getvalue()
        self.assertIn('Sara Kareem: ناجح بقرار', output)
        self.assertIn('Published final_grade for 3 students', output)
        self.assertEqual(PublishedResult.objects.count(), 3)
