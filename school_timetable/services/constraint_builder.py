"""
Constraint Builder Module
Converts class-subject assignment records into one scheduling constraint
per (class, subject) pair.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List

from school_timetable.models.models import SchoolClass


@dataclass(frozen=True)
class ScheduleConstraint:
    """A class needs `periods_needed` periods of a subject every week."""
    class_id: int
    subject_id: int
    periods_needed: int
    preferred_teacher_ids: FrozenSet[int] = field(default_factory=frozenset)


def build_constraints(repository, classes: Iterable[SchoolClass]) -> List[ScheduleConstraint]:
    """
    One constraint per assignment record, in class then assignment order.

    Nothing is filtered here: zero frequencies and dangling subject ids pass
    through and are dealt with by the solver.
    """
    constraints: List[ScheduleConstraint] = []

    for school_class in classes:
        for assignment in repository.get_class_subject_assignments(school_class.id):
            preferred = (
                frozenset([assignment.assigned_teacher_id])
                if assignment.assigned_teacher_id is not None
                else frozenset()
            )
            constraints.append(ScheduleConstraint(
                class_id=school_class.id,
                subject_id=assignment.subject_id,
                periods_needed=assignment.weekly_frequency,
                preferred_teacher_ids=preferred,
            ))

    return constraints
