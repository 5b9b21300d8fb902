"""
Term aggregation: raw term marks into the annual pursuit and first-round final.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from .grades import CalculatedGrade, SubjectGrade
from .marks import Mark


def round_half_up(value) -> int:
    """Round to the nearest integer, halves away from zero (47.5 -> 48)."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def average(values: Iterable) -> int:
    values = [Decimal(str(v)) for v in values]
    return round_half_up(sum(values) / len(values))


def annual_pursuit(marks) -> Optional[int]:
    """
    Average of first term, mid-year and second term.

    Returns None while any of the three is missing and 0 when any of them
    records an absence.
    """
    if any(mark.is_absent for mark in marks):
        return 0
    if not all(mark.is_score for mark in marks):
        return None
    return average(mark.value for mark in marks)


def first_round_final(pursuit: Optional[int], exam: Mark) -> Optional[int]:
    if pursuit is None:
        return None
    if exam.is_absent:
        return average([pursuit, 0])
    if not exam.is_score:
        return None
    return average([pursuit, exam.value])


def compute(grade: SubjectGrade) -> CalculatedGrade:
    """
    Derive the pre-decision grades of one subject.

    Decision fields are left untouched; see decisions.apply_decisions.
    An excused mark anywhere in the first round exempts the subject and wins
    over absence. An absence in a pursuit term fails the subject outright.
    """
    first_round = grade.pursuit_marks + (grade.final_exam_1st,)
    if any(mark.is_excused for mark in first_round):
        return CalculatedGrade(subject=grade.subject, is_exempt=True)

    if any(mark.is_absent for mark in grade.pursuit_marks):
        return CalculatedGrade(
            subject=grade.subject,
            annual_pursuit=0,
            final_grade_1st=0,
            is_absent=True,
        )

    pursuit = annual_pursuit(grade.pursuit_marks)
    final = first_round_final(pursuit, grade.final_exam_1st)
    return CalculatedGrade(
        subject=grade.subject,
        annual_pursuit=pursuit,
        final_grade_1st=final,
        is_absent=grade.final_exam_1st.is_absent,
    )
