"""
Timetable validator.
Re-checks the active timetable for double-bookings and frequency mismatches.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from school_timetable.models.models import SchoolClass, TimetableEntry

logger = logging.getLogger(__name__)


def _day_name(day) -> str:
    return getattr(day, "value", day)


class TimetableValidator:
    """
    Read-only checks over the currently active entries.

    Conflicts are plain strings so they can be shown as-is; the schedule is
    valid exactly when the list is empty.
    """

    def __init__(self, repository):
        self.repository = repository

    def validate_full_schedule(self, school_id: Optional[int] = None) -> Tuple[bool, List[str]]:
        entries = self.repository.get_timetable_entries(school_id)
        classes = self.repository.get_classes(school_id)
        class_labels = {c.id: c.label for c in classes}

        conflicts: List[str] = []
        conflicts.extend(self.teacher_conflicts(entries, class_labels))
        conflicts.extend(self.room_conflicts(entries))
        conflicts.extend(self.frequency_conflicts(entries, classes))
        return len(conflicts) == 0, conflicts

    @staticmethod
    def teacher_conflicts(
        entries: Sequence[TimetableEntry], class_labels: Optional[Dict[int, str]] = None
    ) -> List[str]:
        """A teacher holding the same (day, period) for two different classes."""
        class_labels = class_labels or {}
        by_slot: Dict[Tuple[int, str, int], List[TimetableEntry]] = defaultdict(list)
        for entry in entries:
            by_slot[(entry.teacher_id, _day_name(entry.day), entry.period)].append(entry)

        conflicts = []
        for (teacher_id, day, period), booked in by_slot.items():
            for index, entry in enumerate(booked[1:], start=1):
                other = next((e for e in booked[:index] if e.class_id != entry.class_id), None)
                if other is None:
                    continue
                conflicts.append(
                    f"Teacher conflict: Teacher {teacher_id} is scheduled for both "
                    f"Class {class_labels.get(entry.class_id, entry.class_id)} and "
                    f"Class {class_labels.get(other.class_id, other.class_id)} "
                    f"on {day} period {period}"
                )
        return conflicts

    @staticmethod
    def room_conflicts(entries: Sequence[TimetableEntry]) -> List[str]:
        """A room booked twice for the same (day, period)."""
        seen = set()
        conflicts = []
        for entry in entries:
            if not entry.room:
                continue
            key = (entry.room, _day_name(entry.day), entry.period)
            if key in seen:
                conflicts.append(
                    f"Room conflict: Room {entry.room} is double-booked on "
                    f"{_day_name(entry.day)} period {entry.period}"
                )
            else:
                seen.add(key)
        return conflicts

    def frequency_conflicts(
        self, entries: Sequence[TimetableEntry], classes: Sequence[SchoolClass]
    ) -> List[str]:
        """Active period counts per class and subject against the weekly frequency."""
        actual = Counter((entry.class_id, entry.subject_id) for entry in entries)

        conflicts = []
        for school_class in classes:
            for assignment in self.repository.get_class_subject_assignments(school_class.id):
                subject_name = assignment.subject.name if assignment.subject else "Unknown Subject"
                required = assignment.weekly_frequency
                count = actual[(school_class.id, assignment.subject_id)]

                if count < required:
                    conflicts.append(
                        f"Insufficient periods: Class {school_class.label} needs {required} "
                        f"periods of {subject_name} but only has {count}"
                    )
                if count > required:
                    conflicts.append(
                        f"Excess periods: Class {school_class.label} has {count} "
                        f"periods of {subject_name} but only needs {required}"
                    )
        return conflicts
