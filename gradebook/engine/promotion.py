"""
Promotion classification: per-subject outcomes into one overall status.
"""
from typing import Iterable

from core.choices import ResultStatus
from .grades import CalculatedGrade, GradingPolicy, StudentResult

MESSAGE_PASS = 'ناجح'
MESSAGE_PASS_BY_DECISION = 'ناجح بقرار'
MESSAGE_COMPLETION = 'مكمل في: {subjects}'
MESSAGE_FAIL = 'راسب'
MESSAGE_FAIL_AFTER_COMPLETION = 'راسب في: {subjects}'
MESSAGE_PENDING = 'قيد الانتظار'

SUBJECT_SEPARATOR = '، '


def classify(results: Iterable[CalculatedGrade], policy: GradingPolicy, completion_round=False) -> StudentResult:
    """
    Classify a student from their calculated subject grades.

    In the first round a missing final makes the whole result pending. The
    completion round is terminal: a subject without a final there counts as
    failed and only Pass or Fail can come out.
    """
    results = list(results)
    if not results:
        return StudentResult(ResultStatus.PENDING, MESSAGE_PENDING, completion_round=completion_round)

    counted = [grade for grade in results if not grade.is_exempt]
    pending = [grade for grade in counted if grade.effective_final is None]
    failing = tuple(
        grade.subject for grade in counted
        if grade.effective_final is not None and not policy.is_passing(grade.effective_final)
    )

    if completion_round:
        failing = tuple(
            grade.subject for grade in counted
            if not policy.is_passing(grade.effective_final)
        )
        if failing:
            return StudentResult(
                ResultStatus.FAIL,
                MESSAGE_FAIL_AFTER_COMPLETION.format(subjects=SUBJECT_SEPARATOR.join(failing)),
                failing_subjects=failing,
                completion_round=True,
            )
        return StudentResult(ResultStatus.PASS, MESSAGE_PASS, completion_round=True)

    # Nothing to have passed when every subject is exempt
    if pending or not counted:
        return StudentResult(ResultStatus.PENDING, MESSAGE_PENDING)

    if not failing:
        if any(grade.decision_applied > 0 for grade in counted):
            return StudentResult(ResultStatus.PASS, MESSAGE_PASS_BY_DECISION)
        return StudentResult(ResultStatus.PASS, MESSAGE_PASS)

    if len(failing) <= policy.max_subjects_eligible_for_decision:
        return StudentResult(
            ResultStatus.MUST_SIT_COMPLETION,
            MESSAGE_COMPLETION.format(subjects=SUBJECT_SEPARATOR.join(failing)),
            failing_subjects=failing,
        )

    return StudentResult(ResultStatus.FAIL, MESSAGE_FAIL, failing_subjects=failing)
