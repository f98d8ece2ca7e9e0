"""
Scheduler engine for timetable generation.

Greedy placement with randomized tie-breaking: constraints are shuffled,
and for each one the slots are walked from the least-used day of that
subject onwards. There is no backtracking; a constraint that cannot be
fully placed is reported as a shortfall and the run carries on.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from school_timetable.models.models import DayOfWeek, Teacher
from school_timetable.services.constraint_builder import ScheduleConstraint
from school_timetable.services.time_grid import TimeSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    """
    When a teacher can teach on one day.

    `ranges is None` means unrestricted; otherwise only the listed
    "HH:MM-HH:MM" ranges are allowed.
    """
    ranges: Optional[FrozenSet[str]] = None

    @classmethod
    def unrestricted(cls) -> "Availability":
        return cls(None)

    @classmethod
    def restricted_to(cls, ranges: Iterable[str]) -> "Availability":
        return cls(frozenset(ranges))

    @classmethod
    def from_stored(cls, ranges: Optional[Iterable[str]]) -> "Availability":
        """Stored availability treats a missing or empty list as "any time"."""
        ranges = list(ranges or [])
        if not ranges:
            return cls.unrestricted()
        return cls.restricted_to(ranges)

    @property
    def is_unrestricted(self) -> bool:
        return self.ranges is None

    def allows(self, slot: TimeSlot) -> bool:
        return self.ranges is None or slot.time_range in self.ranges


@dataclass(frozen=True)
class TeacherProfile:
    """The solver's read-only view of a teacher."""
    id: int
    subject_ids: FrozenSet[int]
    availability: Mapping[DayOfWeek, Availability] = field(default_factory=dict)
    is_active: bool = True

    @classmethod
    def from_model(cls, teacher: Teacher) -> "TeacherProfile":
        availability = {}
        for day_name, ranges in (teacher.availability or {}).items():
            try:
                day = DayOfWeek(str(day_name).lower())
            except ValueError:
                logger.warning(f"Ignoring availability for unknown day {day_name!r} on teacher {teacher.id}")
                continue
            availability[day] = Availability.from_stored(ranges)
        return cls(
            id=teacher.id,
            subject_ids=frozenset(teacher.subjects or []),
            availability=availability,
            is_active=bool(teacher.is_active),
        )

    def can_teach(self, subject_id: int) -> bool:
        return self.is_active and subject_id in self.subject_ids

    def is_available(self, slot: TimeSlot) -> bool:
        return self.availability.get(slot.day, Availability.unrestricted()).allows(slot)


@dataclass
class ScheduledEntry:
    """A placed period; `version_id` is stamped once the version exists."""
    class_id: int
    teacher_id: int
    subject_id: int
    day: DayOfWeek
    period: int
    start_time: str
    end_time: str
    room: Optional[str] = None
    is_active: bool = True
    version_id: Optional[int] = None


@dataclass(frozen=True)
class ConstraintShortfall:
    """A constraint the run could not fully satisfy."""
    class_id: int
    subject_id: int
    placed: int
    needed: int
    reason: str


@dataclass
class ScheduleResult:
    entries: List[ScheduledEntry]
    shortfalls: List[ConstraintShortfall]


class SchedulerEngine:
    """
    Assigns (class, subject, teacher) triples to time slots.

    Hard rules: a class holds one period per slot, a teacher teaches one
    class per slot, and a class gets at most MAX_DAILY_PERIODS_PER_SUBJECT
    periods of one subject per day.
    """

    MAX_DAILY_PERIODS_PER_SUBJECT = 2

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.seed = seed
        self.rng = rng if rng is not None else random.Random(seed)

    def solve(
        self,
        constraints: Sequence[ScheduleConstraint],
        teachers: Sequence[TeacherProfile],
        subjects: Iterable,
        slots: Sequence[TimeSlot],
        busy_teacher_slots: Iterable[Tuple[int, DayOfWeek, int]] = (),
    ) -> ScheduleResult:
        """
        Place every constraint as far as slots and teachers allow.

        `subjects` only needs objects with `id` and `name`; `teachers` is in
        roster order, which decides who is picked first. `busy_teacher_slots`
        holds (teacher, day, period) cells already taken by timetables this
        run does not replace.
        """
        subjects_by_id = {subject.id: subject for subject in subjects}

        entries: List[ScheduledEntry] = []
        shortfalls: List[ConstraintShortfall] = []

        class_slots: Dict[Tuple[int, DayOfWeek, int], int] = {}      # (class, day, period) -> teacher
        teacher_slots: Set[Tuple[int, DayOfWeek, int]] = set(busy_teacher_slots)  # (teacher, day, period)
        daily_subject_count: Counter = Counter()                    # (class, day, subject) -> periods

        shuffled = list(constraints)
        self.rng.shuffle(shuffled)

        for constraint in shuffled:
            subject = subjects_by_id.get(constraint.subject_id)
            if subject is None:
                logger.warning(
                    f"Skipping class {constraint.class_id}: subject {constraint.subject_id} does not exist"
                )
                shortfalls.append(ConstraintShortfall(
                    constraint.class_id, constraint.subject_id, 0, constraint.periods_needed,
                    "subject not found",
                ))
                continue

            eligible = self._eligible_teachers(constraint, teachers)
            if not eligible:
                assigned_note = (
                    " (assigned teacher not available or not qualified)"
                    if constraint.preferred_teacher_ids else ""
                )
                logger.warning(f"No teachers available for subject {subject.name}{assigned_note}")
                shortfalls.append(ConstraintShortfall(
                    constraint.class_id, constraint.subject_id, 0, constraint.periods_needed,
                    "no eligible teacher",
                ))
                continue

            priority = self._slot_priority(constraint, slots, daily_subject_count)
            candidates = sorted(slots, key=priority)
            placed = 0
            while candidates and placed < constraint.periods_needed:
                slot = candidates.pop(0)

                class_key = (constraint.class_id, slot.day, slot.period)
                if class_key in class_slots:
                    continue

                day_key = (constraint.class_id, slot.day, constraint.subject_id)
                if daily_subject_count[day_key] >= self.MAX_DAILY_PERIODS_PER_SUBJECT:
                    continue

                teacher = next(
                    (
                        t for t in eligible
                        if t.is_available(slot) and (t.id, slot.day, slot.period) not in teacher_slots
                    ),
                    None,
                )
                if teacher is None:
                    continue

                class_slots[class_key] = teacher.id
                teacher_slots.add((teacher.id, slot.day, slot.period))
                daily_subject_count[day_key] += 1
                entries.append(ScheduledEntry(
                    class_id=constraint.class_id,
                    teacher_id=teacher.id,
                    subject_id=constraint.subject_id,
                    day=slot.day,
                    period=slot.period,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                ))
                placed += 1
                # Daily counts moved; re-rank what is left.
                candidates.sort(key=priority)

            if placed < constraint.periods_needed:
                logger.warning(
                    f"Could only schedule {placed}/{constraint.periods_needed} periods "
                    f"for {subject.name} in class {constraint.class_id}"
                )
                shortfalls.append(ConstraintShortfall(
                    constraint.class_id, constraint.subject_id, placed, constraint.periods_needed,
                    "not enough free slots",
                ))

        return ScheduleResult(entries=entries, shortfalls=shortfalls)

    @staticmethod
    def _eligible_teachers(
        constraint: ScheduleConstraint, teachers: Sequence[TeacherProfile]
    ) -> List[TeacherProfile]:
        """Qualified active teachers; a valid assigned teacher narrows the pool to them."""
        eligible = [t for t in teachers if t.can_teach(constraint.subject_id)]
        if constraint.preferred_teacher_ids:
            assigned = [t for t in eligible if t.id in constraint.preferred_teacher_ids]
            if assigned:
                return assigned
        return eligible

    def _slot_priority(
        self,
        constraint: ScheduleConstraint,
        slots: Sequence[TimeSlot],
        daily_subject_count: Counter,
    ) -> Callable[[TimeSlot], Tuple[int, float]]:
        """
        Sort key putting days with fewer periods of this subject first.
        Ties are broken by a per-slot random draw taken once per constraint.
        """
        tiebreak = {slot: self.rng.random() for slot in slots}

        def key(slot: TimeSlot) -> Tuple[int, float]:
            return (
                daily_subject_count[(constraint.class_id, slot.day, constraint.subject_id)],
                tiebreak[slot],
            )

        return key
