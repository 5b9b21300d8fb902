"""
Term marks derived from monthly marks.

Secondary schools enter two monthly marks per semester; the semester
average is the term mark. Primary schools enter October to January for the
first term and February to April for the second, and the term is the
average of whichever of those months were entered.

A term mark entered directly always wins over the months.
"""
import enum
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from .aggregation import average
from .grades import SubjectGrade
from .marks import ABSENT, EXCUSED, UNSET, Mark


class TermScheme(enum.Enum):
    SEMESTER = 'semester'
    PRIMARY = 'primary'


@dataclass(frozen=True)
class MonthlyMarks:
    """Monthly marks of one student in one subject."""
    first_sem_month_1: Mark = UNSET
    first_sem_month_2: Mark = UNSET
    second_sem_month_1: Mark = UNSET
    second_sem_month_2: Mark = UNSET

    october: Mark = UNSET
    november: Mark = UNSET
    december: Mark = UNSET
    january: Mark = UNSET
    february: Mark = UNSET
    march: Mark = UNSET
    april: Mark = UNSET

    @property
    def first_semester(self) -> Tuple[Mark, ...]:
        return (self.first_sem_month_1, self.first_sem_month_2)

    @property
    def second_semester(self) -> Tuple[Mark, ...]:
        return (self.second_sem_month_1, self.second_sem_month_2)

    @property
    def primary_first_term(self) -> Tuple[Mark, ...]:
        return (self.october, self.november, self.december, self.january)

    @property
    def primary_second_term(self) -> Tuple[Mark, ...]:
        return (self.february, self.march, self.april)


def _attendance(marks: Iterable[Mark]) -> Optional[Mark]:
    # Same precedence as the subject itself: excused wins over absent
    marks = list(marks)
    if any(mark.is_excused for mark in marks):
        return EXCUSED
    if any(mark.is_absent for mark in marks):
        return ABSENT
    return None


def semester_average(marks: Iterable[Mark]) -> Mark:
    """Average of the semester's months; unset until every month is entered."""
    marks = list(marks)
    sentinel = _attendance(marks)
    if sentinel is not None:
        return sentinel
    if not all(mark.is_score for mark in marks):
        return UNSET
    return Mark.score(average(mark.value for mark in marks))


def primary_term_average(marks: Iterable[Mark]) -> Mark:
    """Average of the months entered so far; unset when none are."""
    marks = list(marks)
    sentinel = _attendance(marks)
    if sentinel is not None:
        return sentinel
    entered = [mark.value for mark in marks if mark.is_score]
    if not entered:
        return UNSET
    return Mark.score(average(entered))


def term_averages(monthly: MonthlyMarks, scheme: TermScheme = TermScheme.SEMESTER) -> Tuple[Mark, Mark]:
    """First and second term marks built from monthly marks."""
    if scheme is TermScheme.PRIMARY:
        return (
            primary_term_average(monthly.primary_first_term),
            primary_term_average(monthly.primary_second_term),
        )
    return semester_average(monthly.first_semester), semester_average(monthly.second_semester)


def derive_terms(grade: SubjectGrade, monthly: MonthlyMarks,
                 scheme: TermScheme = TermScheme.SEMESTER) -> SubjectGrade:
    """Fill unset first and second term marks from the monthly marks."""
    first_term, second_term = term_averages(monthly, scheme)
    return replace(
        grade,
        first_term=first_term if grade.first_term.is_unset else grade.first_term,
        second_term=second_term if grade.second_term.is_unset else grade.second_term,
    )
