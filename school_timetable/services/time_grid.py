"""
Time Grid Builder
Turns a school's timetable structure into the ordered list of schedulable slots.
A school without a structure gets the default Monday–Friday, 8-period grid.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from school_timetable.models.models import DayOfWeek, TimetableStructure

logger = logging.getLogger(__name__)


DEFAULT_WORKING_DAYS = [
    DayOfWeek.MONDAY, DayOfWeek.TUESDAY, DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY, DayOfWeek.FRIDAY,
]

DEFAULT_PERIOD_TIMES = [
    {"period": 1, "start_time": "08:00", "end_time": "08:45"},
    {"period": 2, "start_time": "08:45", "end_time": "09:30"},
    {"period": 3, "start_time": "09:30", "end_time": "10:15"},
    {"period": 4, "start_time": "10:15", "end_time": "11:00"},
    {"period": 5, "start_time": "11:15", "end_time": "12:00"},
    {"period": 6, "start_time": "12:00", "end_time": "12:45"},
    {"period": 7, "start_time": "12:45", "end_time": "13:30"},
    {"period": 8, "start_time": "13:30", "end_time": "14:15"},
]


@dataclass(frozen=True)
class TimeSlot:
    """One (day, period) cell of the weekly grid."""
    day: DayOfWeek
    period: int
    start_time: str
    end_time: str

    @property
    def time_range(self) -> str:
        """The "HH:MM-HH:MM" form teacher availability is expressed in."""
        return f"{self.start_time}-{self.end_time}"


def _parse_day(name: Any) -> Optional[DayOfWeek]:
    if isinstance(name, DayOfWeek):
        return name
    try:
        return DayOfWeek(str(name).strip().lower())
    except ValueError:
        logger.warning(f"Ignoring unknown working day {name!r} in timetable structure")
        return None


def _slot_field(slot: Dict[str, Any], snake: str, camel: str) -> Any:
    return slot.get(snake, slot.get(camel))


def _expand(days: Iterable[DayOfWeek], period_times: Iterable[Dict[str, Any]]) -> List[TimeSlot]:
    period_times = list(period_times)
    slots = []
    for day in days:
        for slot in period_times:
            if _slot_field(slot, "is_break", "isBreak"):
                continue
            slots.append(TimeSlot(
                day=day,
                period=int(slot["period"]),
                start_time=_slot_field(slot, "start_time", "startTime"),
                end_time=_slot_field(slot, "end_time", "endTime"),
            ))
    return slots


def default_time_slots() -> List[TimeSlot]:
    return _expand(DEFAULT_WORKING_DAYS, DEFAULT_PERIOD_TIMES)


def build_time_slots(structure: Optional[TimetableStructure]) -> List[TimeSlot]:
    """
    Day-major, period-minor slots for a structure, skipping break periods.

    Empty day or slot lists in the structure fall back to the defaults.
    """
    if structure is None:
        return default_time_slots()

    days = [d for d in (_parse_day(name) for name in structure.working_days or []) if d is not None]
    if not structure.working_days:
        days = list(DEFAULT_WORKING_DAYS)

    return _expand(days, structure.time_slots or DEFAULT_PERIOD_TIMES)


def load_time_slots(repository, school_id: Optional[int]) -> List[TimeSlot]:
    """Fetch the school's structure and build its grid; never raises."""
    if school_id is None:
        return default_time_slots()
    try:
        structure = repository.get_timetable_structure_by_school(school_id)
        return build_time_slots(structure)
    except Exception:
        logger.exception(f"Could not load timetable structure for school {school_id}, using defaults")
        return default_time_slots()
