"""
Pass/fail statistics for one subject across a class.

Pure folds over already calculated values; nothing here feeds back into a
student's result.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional

from .aggregation import round_half_up
from .grades import CalculatedGrade, GradingPolicy, SubjectGrade
from .marks import Mark


@dataclass(frozen=True)
class ClassStatistics:
    total: int = 0
    passed: int = 0
    failed: int = 0
    pass_rate: int = 0

    @property
    def pass_rate_display(self) -> str:
        return f'{self.pass_rate}%'

    def to_dict(self) -> Dict:
        return {
            'total': self.total,
            'passed': self.passed,
            'failed': self.failed,
            'pass_rate': self.pass_rate,
        }


def pass_rate(passed: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(Decimal(passed) * 100 / Decimal(total))


def _fold(outcomes: Iterable[Optional[bool]]) -> ClassStatistics:
    """Fold pass (True) / fail (False) outcomes; None entries are not counted."""
    total = passed = 0
    for outcome in outcomes:
        if outcome is None:
            continue
        total += 1
        if outcome:
            passed += 1
    return ClassStatistics(
        total=total,
        passed=passed,
        failed=total - passed,
        pass_rate=pass_rate(passed, total),
    )


def aggregate(grades: Iterable[CalculatedGrade], policy: GradingPolicy) -> ClassStatistics:
    """Statistics of the deciding final grade of one subject across many students."""
    return _fold(
        None if grade.is_exempt or grade.effective_final is None
        else policy.is_passing(grade.effective_final)
        for grade in grades
    )


def annual_pursuit_statistics(grades: Iterable[CalculatedGrade], policy: GradingPolicy) -> ClassStatistics:
    return _fold(
        None if grade.is_exempt or grade.annual_pursuit is None
        else policy.is_passing(grade.annual_pursuit)
        for grade in grades
    )


def column_statistics(marks: Iterable[Mark], policy: GradingPolicy) -> ClassStatistics:
    """Statistics of a raw mark column; absences count as failures, excusals are left out."""
    def outcome(mark):
        if mark.is_absent:
            return False
        if mark.is_score:
            return mark.value >= policy.pass_threshold
        return None

    return _fold(outcome(mark) for mark in marks)


def subject_report(subject_grades: Iterable[SubjectGrade], calculated: Iterable[CalculatedGrade],
                   policy: GradingPolicy) -> Dict[str, ClassStatistics]:
    """Per-column statistics of one subject, keyed like the published result columns."""
    subject_grades = list(subject_grades)
    calculated = list(calculated)
    return {
        'first_term': column_statistics((g.first_term for g in subject_grades), policy),
        'mid_year': column_statistics((g.mid_year for g in subject_grades), policy),
        'second_term': column_statistics((g.second_term for g in subject_grades), policy),
        'annual_pursuit': annual_pursuit_statistics(calculated, policy),
        'final_grade': aggregate(calculated, policy),
    }
