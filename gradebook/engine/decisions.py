"""
Grace ("decision") point allocation.

A school grants each student a small pool of points that may lift
near-miss failing subjects to the pass threshold. The cheapest subjects
to rescue are served first and a subject is only ever granted the exact
amount that makes it pass.
"""
import logging
from typing import Dict

from .grades import CalculatedGrade, DecisionSummary, GradingPolicy

logger = logging.getLogger(__name__)


def is_eligible(calculated: Dict[str, CalculatedGrade], policy: GradingPolicy) -> bool:
    """A student qualifies only with at least one passed and one failed subject."""
    graded = [
        grade.final_grade_1st for grade in calculated.values()
        if not grade.is_exempt and grade.final_grade_1st is not None
    ]
    has_failure = any(not policy.is_passing(g) for g in graded)
    has_pass = any(policy.is_passing(g) for g in graded)
    return has_failure and has_pass


def allocate(calculated: Dict[str, CalculatedGrade], policy: GradingPolicy) -> Dict[str, int]:
    """
    Decide how many grace points each subject receives.

    Args:
        calculated: Pre-decision grades keyed by subject, in class subject order
        policy: The school's GradingPolicy

    Returns:
        dict: {subject: points} for every subject, 0 where nothing was granted
    """
    allocations = {subject: 0 for subject in calculated}
    if not is_eligible(calculated, policy):
        return allocations

    failing = [
        (policy.pass_threshold - grade.final_grade_1st, subject)
        for subject, grade in calculated.items()
        if not grade.is_exempt
        and grade.final_grade_1st is not None
        and not policy.is_passing(grade.final_grade_1st)
    ]
    # Stable sort keeps class subject order among equal deficits
    failing.sort(key=lambda item: item[0])

    total_granted = 0
    subjects_granted = 0
    for deficit, subject in failing:
        if subjects_granted >= policy.max_subjects_eligible_for_decision:
            break
        # Deficits only grow from here, so nothing further can be covered in full
        if deficit > policy.points_per_subject_cap:
            break
        if total_granted + deficit > policy.max_total_decision_points:
            break
        allocations[subject] = deficit
        total_granted += deficit
        subjects_granted += 1

    if total_granted:
        logger.debug(f'Granted {total_granted} decision points across {subjects_granted} subjects')
    return allocations


def apply_decisions(calculated: Dict[str, CalculatedGrade], allocations: Dict[str, int]) -> Dict[str, CalculatedGrade]:
    """Return new grades with decision points and the post-decision final filled in."""
    return {
        subject: grade.with_decision(allocations.get(subject, 0))
        for subject, grade in calculated.items()
    }


def summarize_decisions(allocations: Dict[str, int], policy: GradingPolicy) -> DecisionSummary:
    granted = tuple((subject, points) for subject, points in allocations.items() if points > 0)
    amount = sum(points for _, points in granted)
    return DecisionSummary(
        amount_granted=amount,
        subjects=granted,
        remaining_points=policy.max_total_decision_points - amount,
    )
