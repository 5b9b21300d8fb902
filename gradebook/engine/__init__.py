"""
Student result engine.

Pure functions over explicit inputs: no database access, no settings, no
caching. Callers load the school's GradingPolicy once and pass it in.
"""
from .aggregation import compute, round_half_up
from .calculator import calculate_student_result
from .decisions import allocate, apply_decisions, summarize_decisions
from .grades import (
    CalculatedGrade,
    DecisionSummary,
    GradingPolicy,
    PolicyConfigurationError,
    StudentOutcome,
    StudentResult,
    SubjectGrade,
)
from .marks import ABSENT, EXCUSED, UNSET, Mark, MarkKind
from .promotion import classify
from .statistics import ClassStatistics, aggregate, column_statistics, subject_report
from .supplementary import resolve_completion
from .terms import MonthlyMarks, TermScheme, derive_terms, term_averages

__all__ = [
    'ABSENT', 'EXCUSED', 'UNSET', 'Mark', 'MarkKind',
    'SubjectGrade', 'CalculatedGrade', 'GradingPolicy', 'PolicyConfigurationError',
    'StudentResult', 'StudentOutcome', 'DecisionSummary', 'ClassStatistics',
    'compute', 'round_half_up', 'allocate', 'apply_decisions', 'summarize_decisions',
    'classify', 'resolve_completion', 'aggregate', 'column_statistics', 'subject_report',
    'calculate_student_result',
    'MonthlyMarks', 'TermScheme', 'derive_terms', 'term_averages',
]
