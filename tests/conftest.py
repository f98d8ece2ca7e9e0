"""
Shared fixtures: an in-memory SQLite database and a small builder for
schools, rosters and timetable entries.
"""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_timetable.models.models import (
    Base, ClassSubjectAssignment, DayOfWeek, School, SchoolClass, Subject, Teacher,
    TimetableEntry, TimetableStructure,
)
from school_timetable.models.repository import TimetableRepository

# A Wednesday; its week runs Monday 2026-10-12 to Saturday 2026-10-17.
TODAY = date(2026, 10, 14)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def repository(db):
    return TimetableRepository(db)


class SchoolBuilder:
    """Creates committed rows for tests."""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def school(self, name="Test School"):
        return self._save(School(name=name))

    def subject(self, school, name, code=None):
        return self._save(Subject(
            school_id=school.id if school else None,
            name=name,
            code=code or name[:3].upper(),
        ))

    def teacher(self, school, name, subjects=(), availability=None, is_active=True):
        return self._save(Teacher(
            school_id=school.id if school else None,
            name=name,
            subjects=[s.id for s in subjects],
            availability=availability or {},
            is_active=is_active,
        ))

    def school_class(self, school, grade="6", section="A"):
        return self._save(SchoolClass(
            school_id=school.id if school else None,
            grade=grade,
            section=section,
        ))

    def assign(self, school_class, subject, frequency, teacher=None):
        return self._save(ClassSubjectAssignment(
            class_id=school_class.id,
            subject_id=subject.id if hasattr(subject, "id") else subject,
            weekly_frequency=frequency,
            assigned_teacher_id=teacher.id if teacher else None,
        ))

    def structure(self, school, working_days, time_slots):
        return self._save(TimetableStructure(
            school_id=school.id,
            working_days=working_days,
            time_slots=time_slots,
        ))

    def entry(self, school_class, teacher, subject, day=DayOfWeek.MONDAY, period=1,
              room=None, is_active=True, version_id=None):
        return self._save(TimetableEntry(
            class_id=school_class.id,
            teacher_id=teacher.id,
            subject_id=subject.id,
            day=day,
            period=period,
            start_time="08:00",
            end_time="08:45",
            room=room,
            is_active=is_active,
            version_id=version_id,
        ))


@pytest.fixture
def builder(db):
    return SchoolBuilder(db)


def assert_hard_constraints(entries):
    """No double-booking of a teacher or class, at most two periods of a subject a day."""
    teacher_slots = [(e.teacher_id, e.day, e.period) for e in entries]
    assert len(teacher_slots) == len(set(teacher_slots))

    class_slots = [(e.class_id, e.version_id, e.day, e.period) for e in entries]
    assert len(class_slots) == len(set(class_slots))

    rooms = [(e.room, e.day, e.period) for e in entries if e.room]
    assert len(rooms) == len(set(rooms))

    per_day = {}
    for e in entries:
        key = (e.class_id, e.day, e.subject_id)
        per_day[key] = per_day.get(key, 0) + 1
    assert all(count <= 2 for count in per_day.values())