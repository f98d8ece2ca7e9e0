"""
Timetable service: the three outward operations of the scheduler core
(generate, validate, suggest) plus read helpers over versions and entries.

generate_timetable and validate_timetable never raise; unexpected errors are
logged and turned into failure results.
"""

import logging
import random
import time
from datetime import date
from typing import Dict, List, Optional

from school_timetable.config import scheduler_seed
from school_timetable.models.models import ScheduleMetadata, SchoolClass, TimetableEntry, TimetableVersion
from school_timetable.schemas.schemas import (
    DetailedTimetableEntry, GenerationResult, TimetableEntryResponse, ValidationResult
)
from school_timetable.services.constraint_builder import build_constraints
from school_timetable.services.optimizer import OptimizationAdvisor
from school_timetable.services.scheduling_engine import SchedulerEngine, ScheduleResult, TeacherProfile
from school_timetable.services.time_grid import load_time_slots
from school_timetable.services.validators import TimetableValidator
from school_timetable.services.versioning import VersionCoordinator, current_week_range

logger = logging.getLogger(__name__)

CLASS_NOT_FOUND = "Class not found."
NO_SCOPE = "Please generate timetable for specific classes."
NO_SCHOOL = "Classes must be associated with a school."
MISSING_ROSTERS = "Please ensure you have added classes, subjects, and teachers before generating timetable."
NOTHING_PLACED = (
    "Unable to generate a valid timetable with current constraints. "
    "Please check teacher availability and subject requirements."
)
GENERATION_ERROR = "An error occurred while generating the timetable. Please try again."
VALIDATION_ERROR = "Unable to validate timetable due to system error"


class TimetableService:
    """
    Wires the time grid, constraint builder, solver, versioning, validator
    and advisor to one repository.
    """

    def __init__(
        self,
        repository,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        today: Optional[date] = None,
    ):
        self.repository = repository
        self.seed = seed if seed is not None else scheduler_seed()
        self.rng = rng
        self.today = today
        self.versions = VersionCoordinator(repository)
        self.validator = TimetableValidator(repository)
        self.advisor = OptimizationAdvisor(repository)

    # ── Generation ────────────────────────────────────────────────────────────

    def generate_timetable(
        self, class_id: Optional[int] = None, school_id: Optional[int] = None
    ) -> GenerationResult:
        """Generate and persist a new timetable version for one class or a whole school."""
        try:
            return self._generate(class_id, school_id)
        except Exception:
            logger.exception("Error generating timetable")
            self.repository.rollback()
            return GenerationResult(success=False, message=GENERATION_ERROR)

    def _generate(self, class_id: Optional[int], school_id: Optional[int]) -> GenerationResult:
        started = time.perf_counter()

        if class_id is not None:
            school_class = self.repository.get_class(class_id)
            if school_class is None:
                return GenerationResult(success=False, message=CLASS_NOT_FOUND)
            classes = [school_class]
        elif school_id is not None:
            classes = self.repository.get_classes(school_id)
        else:
            return GenerationResult(success=False, message=NO_SCOPE)

        if not classes:
            return GenerationResult(success=False, message=MISSING_ROSTERS)

        resolved_school_id = classes[0].school_id
        if resolved_school_id is None:
            return GenerationResult(success=False, message=NO_SCHOOL)

        subjects = self.repository.get_subjects()
        teachers = self.repository.get_teachers(resolved_school_id)
        if not subjects or not teachers:
            return GenerationResult(success=False, message=MISSING_ROSTERS)

        slots = load_time_slots(self.repository, resolved_school_id)
        week_start, week_end = current_week_range(self.today)

        # Versions and entries commit together; a failure below rolls both back.
        versions = self.versions.create_versions(
            [school_class.id for school_class in classes], week_start, week_end, commit=False
        )
        regenerated = set(versions)
        busy_teacher_slots = {
            (entry.teacher_id, entry.day, entry.period)
            for entry in self.repository.get_timetable_entries()
            if entry.class_id not in regenerated
        }

        constraints = build_constraints(self.repository, classes)
        engine = SchedulerEngine(rng=self.rng, seed=self.seed)
        result = engine.solve(
            constraints,
            [TeacherProfile.from_model(teacher) for teacher in teachers],
            subjects,
            slots,
            busy_teacher_slots=busy_teacher_slots,
        )
        logger.info(
            f"Solver placed {len(result.entries)} periods for {len(constraints)} constraints "
            f"across {len(classes)} classes ({len(result.shortfalls)} shortfalls)"
        )

        if not result.entries:
            # The versions minted above are still committed, without entries; see DESIGN.md.
            logger.warning(
                f"No periods could be placed; versions {[v.id for v in versions.values()]} are left without entries"
            )
            self._record_run(resolved_school_id, class_id, result, started, success=False)
            self.repository.commit()
            return GenerationResult(success=False, message=NOTHING_PLACED, entries_created=0)

        records = []
        for scheduled in result.entries:
            version = versions.get(scheduled.class_id)
            scheduled.version_id = version.id if version is not None else None
            records.append(TimetableEntry(
                class_id=scheduled.class_id,
                teacher_id=scheduled.teacher_id,
                subject_id=scheduled.subject_id,
                day=scheduled.day,
                period=scheduled.period,
                start_time=scheduled.start_time,
                end_time=scheduled.end_time,
                room=scheduled.room,
                version_id=scheduled.version_id,
                is_active=scheduled.is_active,
            ))

        self.repository.bulk_create_timetable_entries(records)
        self._record_run(resolved_school_id, class_id, result, started, success=True)
        self.repository.commit()

        first_version = versions[classes[0].id]
        return GenerationResult(
            success=True,
            message=f"Timetable generated successfully with {len(records)} entries.",
            entries_created=len(records),
            version=first_version.version,
        )

    def _record_run(
        self,
        school_id: int,
        class_id: Optional[int],
        result: ScheduleResult,
        started: float,
        success: bool,
    ) -> None:
        notes = "; ".join(
            f"class {s.class_id} subject {s.subject_id}: {s.placed}/{s.needed} ({s.reason})"
            for s in result.shortfalls
        )
        self.repository.record_generation(ScheduleMetadata(
            school_id=school_id,
            class_id=class_id,
            generation_seed=self.seed,
            generation_time_ms=int((time.perf_counter() - started) * 1000),
            success=success,
            entries_created=len(result.entries),
            shortfall_count=len(result.shortfalls),
            notes=notes or None,
        ))

    # ── Validation and advice ─────────────────────────────────────────────────

    def validate_timetable(self, school_id: Optional[int] = None) -> ValidationResult:
        try:
            is_valid, conflicts = self.validator.validate_full_schedule(school_id)
        except Exception:
            logger.exception("Error validating timetable")
            return ValidationResult(is_valid=False, conflicts=[VALIDATION_ERROR])
        return ValidationResult(is_valid=is_valid, conflicts=conflicts)

    def suggest_optimizations(self, school_id: Optional[int] = None) -> List[str]:
        return self.advisor.suggest(school_id)

    # ── Versions ──────────────────────────────────────────────────────────────

    def list_versions(
        self,
        class_id: int,
        week_start: Optional[date] = None,
        week_end: Optional[date] = None,
    ) -> List[TimetableVersion]:
        """Versions of a class for a week; defaults to the current week."""
        if week_start is None or week_end is None:
            week_start, week_end = current_week_range(self.today)
        return self.versions.list_versions(class_id, week_start, week_end)

    def activate_version(self, version_id: int, class_id: Optional[int] = None) -> TimetableVersion:
        return self.versions.activate_version(version_id, class_id)

    # ── Entries ───────────────────────────────────────────────────────────────

    def get_timetable(
        self,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        version_id: Optional[int] = None,
        school_id: Optional[int] = None,
    ) -> List[TimetableEntry]:
        """A version's entries, or the active entries of a class, teacher or school."""
        if version_id is not None:
            return self.repository.get_timetable_entries_for_version(version_id)
        if class_id is not None:
            return self.repository.get_timetable_for_class(class_id)
        if teacher_id is not None:
            return self.repository.get_timetable_for_teacher(teacher_id)
        return self.repository.get_timetable_entries(school_id)

    def get_detailed_timetable(
        self,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        version_id: Optional[int] = None,
        school_id: Optional[int] = None,
    ) -> List[DetailedTimetableEntry]:
        """Entries enriched with teacher, subject and class names."""
        entries = self.get_timetable(class_id, teacher_id, version_id, school_id)
        teachers = {t.id: t for t in self.repository.get_teachers(school_id, active_only=False)}
        subjects = {s.id: s for s in self.repository.get_subjects()}
        classes: Dict[int, SchoolClass] = {c.id: c for c in self.repository.get_classes(school_id)}

        detailed = []
        for entry in entries:
            teacher = teachers.get(entry.teacher_id)
            subject = subjects.get(entry.subject_id)
            school_class = classes.get(entry.class_id)
            detailed.append(DetailedTimetableEntry(
                **TimetableEntryResponse.model_validate(entry).model_dump(),
                teacher_name=teacher.name if teacher else None,
                subject_name=subject.name if subject else None,
                subject_code=subject.code if subject else None,
                class_label=school_class.label if school_class else None,
            ))
        return detailed
