"""
Data-access layer the scheduler core talks to.

Every read and write the generation, validation and advice flows need goes
through TimetableRepository, so the services never build queries themselves.
"""

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from school_timetable.models.models import (
    ClassSubjectAssignment, ScheduleMetadata, SchoolClass, Subject, Teacher,
    TimetableEntry, TimetableStructure, TimetableVersion,
)


class TimetableRepository:
    """SQLAlchemy-backed store for classes, rosters, versions and entries."""

    def __init__(self, db: Session):
        self.db = db

    # ── Rosters ───────────────────────────────────────────────────────────────

    def get_class(self, class_id: int) -> Optional[SchoolClass]:
        return self.db.query(SchoolClass).filter(SchoolClass.id == class_id).first()

    def lock_class(self, class_id: int) -> Optional[SchoolClass]:
        """Row-lock a class until the current transaction ends (no-op on SQLite)."""
        return self.db.query(SchoolClass).filter(SchoolClass.id == class_id).with_for_update().first()

    def get_classes(self, school_id: Optional[int] = None) -> List[SchoolClass]:
        query = self.db.query(SchoolClass)
        if school_id is not None:
            query = query.filter(SchoolClass.school_id == school_id)
        return query.order_by(SchoolClass.id).all()

    def get_subjects(self, school_id: Optional[int] = None) -> List[Subject]:
        query = self.db.query(Subject)
        if school_id is not None:
            query = query.filter(Subject.school_id == school_id)
        return query.order_by(Subject.id).all()

    def get_teachers(self, school_id: Optional[int] = None, active_only: bool = True) -> List[Teacher]:
        """Teachers (active ones unless told otherwise), optionally scoped to one school, in roster order."""
        query = self.db.query(Teacher)
        if active_only:
            query = query.filter(Teacher.is_active == True)
        if school_id is not None:
            query = query.filter(Teacher.school_id == school_id)
        return query.order_by(Teacher.id).all()

    def get_class_subject_assignments(self, class_id: int) -> List[ClassSubjectAssignment]:
        return (
            self.db.query(ClassSubjectAssignment)
            .options(joinedload(ClassSubjectAssignment.subject))
            .filter(ClassSubjectAssignment.class_id == class_id)
            .order_by(ClassSubjectAssignment.id)
            .all()
        )

    def get_timetable_structure_by_school(self, school_id: int) -> Optional[TimetableStructure]:
        return self.db.query(TimetableStructure).filter(
            TimetableStructure.school_id == school_id,
            TimetableStructure.is_active == True
        ).order_by(TimetableStructure.id.desc()).first()

    # ── Versions ──────────────────────────────────────────────────────────────

    def get_version(self, version_id: int) -> Optional[TimetableVersion]:
        return self.db.query(TimetableVersion).filter(TimetableVersion.id == version_id).first()

    def get_timetable_versions_for_class(
        self, class_id: int, week_start: date, week_end: date
    ) -> List[TimetableVersion]:
        return self.db.query(TimetableVersion).filter(
            TimetableVersion.class_id == class_id,
            TimetableVersion.week_start == week_start,
            TimetableVersion.week_end == week_end
        ).order_by(TimetableVersion.created_at, TimetableVersion.id).all()

    def create_timetable_version(
        self, class_id: int, version: str, week_start: date, week_end: date, is_active: bool = True
    ) -> TimetableVersion:
        record = TimetableVersion(
            class_id=class_id,
            version=version,
            week_start=week_start,
            week_end=week_end,
            is_active=is_active,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def set_active_version(self, version_id: int, class_id: int) -> Optional[TimetableVersion]:
        """
        Activate one version and deactivate its siblings for the same class/week.
        Returns the activated version, or None if the id does not resolve.
        The caller owns the transaction.
        """
        target = self.get_version(version_id)
        if target is None:
            return None

        self.db.query(TimetableVersion).filter(
            TimetableVersion.class_id == class_id,
            TimetableVersion.week_start == target.week_start,
            TimetableVersion.week_end == target.week_end,
            TimetableVersion.id != target.id
        ).update({TimetableVersion.is_active: False}, synchronize_session=False)
        target.is_active = True
        self.db.flush()
        self.db.expire_all()
        return self.get_version(version_id)

    def count_active_versions(self, class_id: int, week_start: date, week_end: date) -> int:
        return self.db.query(func.count(TimetableVersion.id)).filter(
            TimetableVersion.class_id == class_id,
            TimetableVersion.week_start == week_start,
            TimetableVersion.week_end == week_end,
            TimetableVersion.is_active == True
        ).scalar() or 0

    # ── Entries ───────────────────────────────────────────────────────────────

    def bulk_create_timetable_entries(self, entries: Iterable[TimetableEntry]) -> List[TimetableEntry]:
        """
        Persist entries after deactivating (not deleting) every previously
        active entry of the classes they belong to.
        """
        entries = list(entries)
        if not entries:
            return []

        class_ids = sorted({entry.class_id for entry in entries})
        self.db.query(TimetableEntry).filter(
            TimetableEntry.class_id.in_(class_ids),
            TimetableEntry.is_active == True
        ).update({TimetableEntry.is_active: False}, synchronize_session=False)
        self.db.expire_all()

        self.db.add_all(entries)
        self.db.flush()
        return entries

    def _active_entries(self, school_id: Optional[int] = None):
        query = self.db.query(TimetableEntry).filter(TimetableEntry.is_active == True)
        if school_id is not None:
            query = query.join(SchoolClass, SchoolClass.id == TimetableEntry.class_id).filter(
                SchoolClass.school_id == school_id
            )
        return query

    def get_timetable_entries(self, school_id: Optional[int] = None) -> List[TimetableEntry]:
        """All currently active entries, in a stable order."""
        return self._active_entries(school_id).order_by(TimetableEntry.id).all()

    def get_timetable_for_class(self, class_id: int) -> List[TimetableEntry]:
        return self._active_entries().filter(
            TimetableEntry.class_id == class_id
        ).order_by(TimetableEntry.id).all()

    def get_timetable_for_teacher(self, teacher_id: int) -> List[TimetableEntry]:
        return self._active_entries().filter(
            TimetableEntry.teacher_id == teacher_id
        ).order_by(TimetableEntry.id).all()

    def get_timetable_entries_for_version(self, version_id: int) -> List[TimetableEntry]:
        return self.db.query(TimetableEntry).filter(
            TimetableEntry.version_id == version_id
        ).order_by(TimetableEntry.id).all()

    # ── Run metadata ──────────────────────────────────────────────────────────

    def record_generation(self, metadata: ScheduleMetadata) -> ScheduleMetadata:
        self.db.add(metadata)
        self.db.flush()
        return metadata

    # ── Transactions ──────────────────────────────────────────────────────────

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
