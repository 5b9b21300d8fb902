"""
End-to-end result calculation for one student.
"""
from typing import Iterable

from core.choices import ResultStatus
from . import aggregation, decisions, promotion, supplementary
from .grades import GradingPolicy, StudentOutcome, SubjectGrade


def calculate_student_result(subject_grades: Iterable[SubjectGrade], policy: GradingPolicy) -> StudentOutcome:
    """
    Turn a student's raw subject marks into final grades and a result.

    Subjects keep the order they are given in, which should be the class
    subject order. The completion round is only resolved once every subject
    sent to it has a completion exam mark; until then the student stays at
    MustSitCompletion.
    """
    subject_grades = list(subject_grades)
    calculated = {grade.subject: aggregation.compute(grade) for grade in subject_grades}

    allocations = decisions.allocate(calculated, policy)
    calculated = decisions.apply_decisions(calculated, allocations)
    summary = decisions.summarize_decisions(allocations, policy)

    result = promotion.classify(calculated.values(), policy)

    if result.status == ResultStatus.MUST_SIT_COMPLETION:
        second_round = {grade.subject: grade.final_exam_2nd for grade in subject_grades}
        if all(not second_round[subject].is_unset for subject in result.failing_subjects):
            calculated, result = supplementary.resolve_completion(calculated, second_round, policy)

    return StudentOutcome(grades=calculated, result=result, decisions=summary)
