"""
Value types flowing through the result engine.

Everything here is immutable; each engine stage returns new instances
instead of updating the ones it was given.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from core.choices import ResultStatus
from .marks import Mark, UNSET


class PolicyConfigurationError(ValueError):
    """Raised when a school's grading policy values cannot be used."""


@dataclass(frozen=True)
class GradingPolicy:
    """School grading regulation, loaded once and passed into every call."""
    max_total_decision_points: int
    max_subjects_eligible_for_decision: int
    points_per_subject_cap: int
    pass_threshold: int = 50

    def __post_init__(self):
        errors = []
        if not 0 <= self.pass_threshold <= 100:
            errors.append(f'pass_threshold must be within 0-100, got {self.pass_threshold}')
        if self.max_total_decision_points < 0:
            errors.append(f'max_total_decision_points cannot be negative, got {self.max_total_decision_points}')
        if self.max_subjects_eligible_for_decision < 0:
            errors.append(
                f'max_subjects_eligible_for_decision cannot be negative, '
                f'got {self.max_subjects_eligible_for_decision}'
            )
        if self.points_per_subject_cap < 0:
            errors.append(f'points_per_subject_cap cannot be negative, got {self.points_per_subject_cap}')
        if errors:
            raise PolicyConfigurationError('; '.join(errors))

    def is_passing(self, grade: Optional[int]) -> bool:
        return grade is not None and grade >= self.pass_threshold


@dataclass(frozen=True)
class SubjectGrade:
    """Raw marks for one student in one subject."""
    subject: str
    first_term: Mark = UNSET
    mid_year: Mark = UNSET
    second_term: Mark = UNSET
    final_exam_1st: Mark = UNSET
    final_exam_2nd: Mark = UNSET

    @property
    def pursuit_marks(self) -> Tuple[Mark, Mark, Mark]:
        return (self.first_term, self.mid_year, self.second_term)


@dataclass(frozen=True)
class CalculatedGrade:
    """Derived grades for one student in one subject."""
    subject: str
    annual_pursuit: Optional[int] = None
    final_grade_1st: Optional[int] = None
    decision_applied: int = 0
    final_grade_with_decision: Optional[int] = None
    final_grade_2nd: Optional[int] = None
    is_exempt: bool = False
    is_absent: bool = False

    @property
    def effective_final(self) -> Optional[int]:
        """The grade that currently decides the subject."""
        if self.final_grade_2nd is not None:
            return self.final_grade_2nd
        return self.final_grade_with_decision

    def with_decision(self, points: int) -> 'CalculatedGrade':
        final = None if self.final_grade_1st is None else self.final_grade_1st + points
        return replace(self, decision_applied=points, final_grade_with_decision=final)

    def to_dict(self) -> Dict:
        return {
            'subject': self.subject,
            'annual_pursuit': self.annual_pursuit,
            'final_grade_1st': self.final_grade_1st,
            'decision_applied': self.decision_applied,
            'final_grade_with_decision': self.final_grade_with_decision,
            'final_grade_2nd': self.final_grade_2nd,
            'is_exempt': self.is_exempt,
            'is_absent': self.is_absent,
        }


@dataclass(frozen=True)
class StudentResult:
    status: ResultStatus
    message: str
    failing_subjects: Tuple[str, ...] = ()
    completion_round: bool = False

    def to_dict(self) -> Dict:
        return {
            'status': self.status.value,
            'message': self.message,
            'failing_subjects': list(self.failing_subjects),
            'completion_round': self.completion_round,
        }


@dataclass(frozen=True)
class DecisionSummary:
    """Grace points granted to one student, as shown in the decision log."""
    amount_granted: int = 0
    subjects: Tuple[Tuple[str, int], ...] = ()
    remaining_points: int = 0

    @property
    def was_applied(self) -> bool:
        return self.amount_granted > 0

    def to_dict(self) -> Dict:
        return {
            'amount_granted': self.amount_granted,
            'subjects': [{'subject': name, 'points': points} for name, points in self.subjects],
            'remaining_points': self.remaining_points,
        }


@dataclass(frozen=True, eq=False)
class StudentOutcome:
    """
    Everything the engine derives for one student.

    Holds a dict of grades, so outcomes compare and hash by identity;
    compare `to_dict()` output for value equality.
    """
    grades: Dict[str, CalculatedGrade]
    result: StudentResult
    decisions: DecisionSummary = field(default_factory=DecisionSummary)

    def ordered_grades(self) -> List[CalculatedGrade]:
        return list(self.grades.values())

    def to_dict(self) -> Dict:
        return {
            'grades': [grade.to_dict() for grade in self.grades.values()],
            'result': self.result.to_dict(),
            'decisions': self.decisions.to_dict(),
        }
