"""
Completion ("second round") exam resolution.
"""
from dataclasses import replace
from typing import Dict, Tuple

from .aggregation import round_half_up
from .grades import CalculatedGrade, GradingPolicy, StudentResult
from .marks import Mark, UNSET
from .promotion import classify


def completion_grade(grade: CalculatedGrade, exam: Mark) -> CalculatedGrade:
    """The completion exam score replaces the subject's final outright."""
    if exam.is_excused:
        return replace(grade, final_grade_2nd=None, is_exempt=True)
    if exam.is_absent:
        return replace(grade, final_grade_2nd=0, is_absent=True)
    if exam.is_score:
        return replace(grade, final_grade_2nd=round_half_up(exam.value))
    return replace(grade, final_grade_2nd=None)


def resolve_completion(calculated: Dict[str, CalculatedGrade], second_round: Dict[str, Mark],
                       policy: GradingPolicy) -> Tuple[Dict[str, CalculatedGrade], StudentResult]:
    """
    Apply completion exam marks to the subjects still failing after the first round.

    Args:
        calculated: Post-decision grades keyed by subject
        second_round: Completion exam marks keyed by subject
        policy: The school's GradingPolicy

    Returns:
        tuple: (updated grades, terminal StudentResult)
    """
    updated = {}
    for subject, grade in calculated.items():
        failing = (
            not grade.is_exempt
            and grade.final_grade_with_decision is not None
            and not policy.is_passing(grade.final_grade_with_decision)
        )
        if failing:
            updated[subject] = completion_grade(grade, second_round.get(subject, UNSET))
        else:
            updated[subject] = grade

    return updated, classify(updated.values(), policy, completion_round=True)
