"""
Bridge between the stored gradebook records and the result engine.

Loads raw marks in bulk, runs the engine per student with the school's
grading policy, and writes the published result snapshots.
"""
import logging
from collections import defaultdict

from django.db import transaction
from django.utils import timezone

from core.choices import ResultKey
from core.models import SchoolSettings
from students.models import Student

from . import config
from .engine import (
    ABSENT, EXCUSED, MonthlyMarks, SubjectGrade as EngineSubjectGrade,
    calculate_student_result, subject_report, term_averages,
)
from .models import ALL_MARK_FIELDS, PublishedResult, SubjectGrade

logger = logging.getLogger(__name__)

RAW_RESULT_FIELDS = {
    ResultKey.FIRST_TERM: 'first_term',
    ResultKey.MID_YEAR: 'mid_year',
    ResultKey.SECOND_TERM: 'second_term',
}
MONTH_RESULT_FIELDS = {
    ResultKey.FIRST_SEM_MONTH_1: 'first_sem_month_1',
    ResultKey.FIRST_SEM_MONTH_2: 'first_sem_month_2',
    ResultKey.SECOND_SEM_MONTH_1: 'second_sem_month_1',
    ResultKey.SECOND_SEM_MONTH_2: 'second_sem_month_2',
}
SEMESTER_AVERAGE_KEYS = (ResultKey.FIRST_SEM_AVG, ResultKey.SECOND_SEM_AVG)


def get_grading_policy():
    """Load the school's grading policy. Raises ImproperlyConfigured if invalid."""
    return SchoolSettings.load().get_grading_policy()


def get_term_scheme():
    return SchoolSettings.load().term_scheme


def exam_order_key(student):
    """Sort students by exam number, numerically where possible."""
    exam_id = student.exam_id or ''
    if exam_id.isdecimal():
        return (0, int(exam_id), '')
    return (1, 0, exam_id)


class ClassResults:
    """Engine outcomes for every student of a class, computed in one pass."""

    def __init__(self, class_obj, students, subjects, raw_grades, outcomes, policy,
                 monthly_marks=None, term_scheme=None):
        self.class_obj = class_obj
        self.students = students
        self.subjects = subjects
        self.raw_grades = raw_grades
        self.outcomes = outcomes
        self.policy = policy
        self.monthly_marks = monthly_marks or {}
        self.term_scheme = term_scheme

    def __iter__(self):
        for student in self.students:
            yield student, self.outcomes[student.id]

    def subject_reports(self):
        """
        Per-column pass/fail statistics for each subject of the class.

        Returns:
            dict: {subject_name: {column: ClassStatistics}}
        """
        reports = {}
        for subject in self.subjects:
            raw = [self.raw_grades[s.id][subject.name] for s in self.students]
            calculated = [self.outcomes[s.id].grades[subject.name] for s in self.students]
            reports[subject.name] = subject_report(raw, calculated, self.policy)
        return reports

    def decision_log(self):
        """Students who were granted grace points, with what they received."""
        return [
            (student, outcome)
            for student, outcome in self
            if outcome.decisions.was_applied
        ][:config.DECISION_LOG_LIMIT]


def _engine_grades(subjects, stored, term_scheme):
    """Engine SubjectGrades in class subject order; missing rows are all unset."""
    grades = {}
    for subject in subjects:
        record = stored.get(subject.id)
        if record is None:
            grades[subject.name] = EngineSubjectGrade(subject=subject.name)
        else:
            grades[subject.name] = record.to_engine(subject.name, term_scheme)
    return grades


def _monthly_marks(subjects, stored):
    return {
        subject.name: stored[subject.id].monthly_marks() if subject.id in stored else MonthlyMarks()
        for subject in subjects
    }


def calculate_class_results(class_obj, policy=None, term_scheme=None):
    """
    Calculate the results of every active student in a class.

    Args:
        class_obj: academics.Class instance
        policy: GradingPolicy; loaded from SchoolSettings when omitted
        term_scheme: engine TermScheme; follows SchoolSettings.school_level when omitted

    Returns:
        ClassResults
    """
    if policy is None:
        policy = get_grading_policy()
    if term_scheme is None:
        term_scheme = get_term_scheme()

    students = sorted(
        Student.objects.filter(current_class=class_obj, status=Student.Status.ACTIVE),
        key=exam_order_key
    )
    subjects = class_obj.get_subjects()

    stored = defaultdict(dict)
    for record in SubjectGrade.objects.filter(
        student__in=students,
        subject__in=subjects
    ):
        stored[record.student_id][record.subject_id] = record

    raw_grades = {}
    monthly_marks = {}
    outcomes = {}
    for student in students:
        records = stored.get(student.id, {})
        raw_grades[student.id] = _engine_grades(subjects, records, term_scheme)
        monthly_marks[student.id] = _monthly_marks(subjects, records)
        outcomes[student.id] = calculate_student_result(raw_grades[student.id].values(), policy)

    logger.info(
        f'Calculated results for {len(students)} students in {class_obj.name} '
        f'across {len(subjects)} subjects'
    )
    return ClassResults(
        class_obj, students, subjects, raw_grades, outcomes, policy,
        monthly_marks=monthly_marks, term_scheme=term_scheme,
    )


def calculate_student_outcome(student, policy=None, term_scheme=None):
    """Calculate one student's result against their current class subjects."""
    if policy is None:
        policy = get_grading_policy()
    if term_scheme is None:
        term_scheme = get_term_scheme()

    subjects = student.current_class.get_subjects() if student.current_class else []
    stored = {
        record.subject_id: record
        for record in SubjectGrade.objects.filter(student=student, subject__in=subjects)
    }
    return calculate_student_result(_engine_grades(subjects, stored, term_scheme).values(), policy)


def _published_grade(result_key, raw_grade, calculated, monthly, term_scheme):
    if result_key in MONTH_RESULT_FIELDS:
        return getattr(monthly, MONTH_RESULT_FIELDS[result_key]).to_raw()
    if result_key in SEMESTER_AVERAGE_KEYS:
        averages = term_averages(monthly, term_scheme)
        return averages[SEMESTER_AVERAGE_KEYS.index(result_key)].to_raw()
    if result_key in RAW_RESULT_FIELDS:
        return getattr(raw_grade, RAW_RESULT_FIELDS[result_key]).to_raw()
    if result_key == ResultKey.ANNUAL_PURSUIT:
        return calculated.annual_pursuit
    return calculated.effective_final


def publish_results(class_obj, result_key, policy=None):
    """
    Publish one result column for every student of a class.

    Existing snapshots for the same column are replaced.

    Returns:
        int: number of students published
    """
    result_key = ResultKey(result_key)
    results = calculate_class_results(class_obj, policy=policy)
    published_at = timezone.now()

    snapshots = []
    for student, outcome in results:
        grades = [
            {
                'subject': subject.name,
                'grade': _published_grade(
                    result_key,
                    results.raw_grades[student.id][subject.name],
                    outcome.grades[subject.name],
                    results.monthly_marks[student.id][subject.name],
                    results.term_scheme,
                ),
            }
            for subject in results.subjects
        ]
        snapshot = PublishedResult(
            student=student,
            result_key=result_key,
            published_at=published_at,
            payload={
                'result_key': result_key.value,
                'label': str(result_key.label),
                'published_at': published_at.isoformat(),
                'grades': grades,
            },
        )
        if result_key == ResultKey.FINAL_GRADE:
            snapshot.status = outcome.result.status
            snapshot.message = outcome.result.message
            snapshot.payload['result'] = outcome.result.to_dict()
        snapshots.append(snapshot)

    with transaction.atomic():
        PublishedResult.objects.filter(
            student__in=results.students,
            result_key=result_key
        ).delete()
        PublishedResult.objects.bulk_create(snapshots, batch_size=config.BULK_UPDATE_BATCH_SIZE)

    logger.info(f'Published {result_key.value} for {len(snapshots)} students in {class_obj.name}')
    return len(snapshots)


def withdraw_results(class_obj, result_key):
    """Remove a published result column for every student of a class."""
    result_key = ResultKey(result_key)
    deleted, _ = PublishedResult.objects.filter(
        student__current_class=class_obj,
        result_key=result_key
    ).delete()
    logger.info(f'Withdrew {result_key.value} for {deleted} students in {class_obj.name}')
    return deleted


def record_exam_attendance(student, subject, field_name, excused=False):
    """
    Record that a student missed the exam behind one mark field.

    The absence replaces whatever mark was stored for that exam.
    """
    if field_name not in ALL_MARK_FIELDS:
        raise ValueError(f'Unknown mark field: {field_name}')

    grade, _ = SubjectGrade.objects.get_or_create(student=student, subject=subject)
    grade.set_mark(field_name, EXCUSED if excused else ABSENT)
    grade.save()
    logger.info(
        f'Recorded {"excused" if excused else "absent"} for {student} in '
        f'{subject.name} ({field_name})'
    )
    return grade
