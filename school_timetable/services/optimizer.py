"""
Optimization advisor.
Coarse heuristics over the active timetable, reported as suggestions only.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from school_timetable.models.models import TimetableEntry

logger = logging.getLogger(__name__)

WORKLOAD_SPREAD_RATIO = 0.3
AFTERNOON_SKEW_RATIO = 1.5
LAST_MORNING_PERIOD = 4

WORKLOAD_SUGGESTION = "Consider redistributing teacher workload for better balance."
AFTERNOON_SUGGESTION = "Consider moving some subjects to morning hours for better student engagement."
CONSECUTIVE_SUGGESTION = (
    "Avoid scheduling the same subject in consecutive periods for better learning outcomes."
)
ALL_CLEAR = "Current timetable appears well-optimized. No major issues detected."
ANALYSIS_FAILED = "Unable to analyze timetable for optimization opportunities."


def workload_is_unbalanced(entries: Sequence[TimetableEntry]) -> bool:
    workload = Counter(entry.teacher_id for entry in entries)
    if not workload:
        return False
    loads = list(workload.values())
    mean = sum(loads) / len(loads)
    return max(loads) - min(loads) > mean * WORKLOAD_SPREAD_RATIO


def afternoon_heavy(entries: Sequence[TimetableEntry]) -> bool:
    morning = sum(1 for entry in entries if entry.period <= LAST_MORNING_PERIOD)
    afternoon = sum(1 for entry in entries if entry.period > LAST_MORNING_PERIOD)
    return afternoon > morning * AFTERNOON_SKEW_RATIO


def consecutive_repeats(entries: Sequence[TimetableEntry]) -> int:
    """Times a class has the same subject twice in a row within a day."""
    daily: Dict[Tuple[int, str], List[TimetableEntry]] = defaultdict(list)
    for entry in entries:
        daily[(entry.class_id, getattr(entry.day, "value", entry.day))].append(entry)

    repeats = 0
    for day_entries in daily.values():
        ordered = sorted(day_entries, key=lambda e: e.period)
        repeats += sum(
            1 for first, second in zip(ordered, ordered[1:])
            if first.subject_id == second.subject_id
        )
    return repeats


class OptimizationAdvisor:
    """Advisory pass over the active entries; never changes anything."""

    def __init__(self, repository):
        self.repository = repository

    def suggest(self, school_id: Optional[int] = None) -> List[str]:
        try:
            entries = self.repository.get_timetable_entries(school_id)
            return self.suggestions_for(entries)
        except Exception:
            logger.exception("Error generating optimization suggestions")
            return [ANALYSIS_FAILED]

    @staticmethod
    def suggestions_for(entries: Sequence[TimetableEntry]) -> List[str]:
        suggestions = []
        if workload_is_unbalanced(entries):
            suggestions.append(WORKLOAD_SUGGESTION)
        if afternoon_heavy(entries):
            suggestions.append(AFTERNOON_SUGGESTION)
        if consecutive_repeats(entries):
            suggestions.append(CONSECUTIVE_SUGGESTION)
        return suggestions or [ALL_CLEAR]
