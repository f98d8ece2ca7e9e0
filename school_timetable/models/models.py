"""
SQLAlchemy models for the school timetable scheduler.
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class DayOfWeek(str, Enum):
    """Days a school can work."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class School(Base):
    """A school; every roster below is scoped to one."""
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    classes = relationship("SchoolClass", back_populates="school")
    teachers = relationship("Teacher", back_populates="school")
    subjects = relationship("Subject", back_populates="school")
    structures = relationship("TimetableStructure", back_populates="school")


class Teacher(Base):
    """
    A teacher.

    `subjects` holds the ids of subjects the teacher may teach.
    `availability` maps a day name to "HH:MM-HH:MM" ranges; a missing or
    empty list means the teacher is available all school day.
    """
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    subjects = Column(JSON, nullable=False, default=list)
    availability = Column(JSON, nullable=False, default=dict)
    max_load = Column(Integer, default=30, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    school = relationship("School", back_populates="teachers")


class Subject(Base):
    """Represents a subject."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    name = Column(String(255), nullable=False)
    code = Column(String(10), nullable=False)
    periods_per_week = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    school = relationship("School", back_populates="subjects")


class SchoolClass(Base):
    """A grade/section group of students."""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    grade = Column(String(50), nullable=False)
    section = Column(String(10), nullable=False)
    student_count = Column(Integer, default=0, nullable=False)
    room = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    school = relationship("School", back_populates="classes")
    assignments = relationship("ClassSubjectAssignment", back_populates="school_class")

    @property
    def label(self) -> str:
        return f"{self.grade}-{self.section}"


class ClassSubjectAssignment(Base):
    """How many periods a week a class takes a subject, and optionally from whom."""
    __tablename__ = "class_subject_assignments"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    weekly_frequency = Column(Integer, nullable=False)
    assigned_teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    school_class = relationship("SchoolClass", back_populates="assignments")
    subject = relationship("Subject")
    assigned_teacher = relationship("Teacher")

    __table_args__ = (Index("ix_assignment_class", "class_id"),)


class TimetableStructure(Base):
    """
    Weekly grid configuration of a school.

    `time_slots` is a list of {"period", "start_time", "end_time", "is_break"}.
    """
    __tablename__ = "timetable_structures"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    periods_per_day = Column(Integer, default=8, nullable=False)
    working_days = Column(JSON, nullable=False, default=list)
    time_slots = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    school = relationship("School", back_populates="structures")


class TimetableVersion(Base):
    """A generated timetable snapshot of one class for one week."""
    __tablename__ = "timetable_versions"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    version = Column(String(10), nullable=False)  # v0.1, v0.2, ...
    week_start = Column(Date, nullable=False)
    week_end = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    entries = relationship("TimetableEntry", back_populates="version")

    __table_args__ = (
        Index("ix_timetable_versions_class_week", "class_id", "week_start", "week_end"),
        UniqueConstraint("class_id", "week_start", "week_end", "version", name="uq_timetable_version_label"),
    )


class TimetableEntry(Base):
    """Represents a single entry in the timetable."""
    __tablename__ = "timetable_entries"

    id = Column(Integer, primary_key=True, index=True)

    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    version_id = Column(Integer, ForeignKey("timetable_versions.id"), nullable=True)

    # Time information
    day = Column(SQLEnum(DayOfWeek), nullable=False)
    period = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    room = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    version = relationship("TimetableVersion", back_populates="entries")

    __table_args__ = (
        Index("ix_timetable_class_day_period", "class_id", "day", "period"),
        Index("ix_timetable_teacher_day_period", "teacher_id", "day", "period"),
        Index("ix_timetable_version", "version_id"),
        Index("ix_timetable_active", "is_active"),
    )


class ScheduleMetadata(Base):
    """Metadata about one generation run."""
    __tablename__ = "schedule_metadata"

    id = Column(Integer, primary_key=True, index=True)

    generated_at = Column(DateTime, default=datetime.utcnow)
    school_id = Column(Integer, nullable=True)
    class_id = Column(Integer, nullable=True)
    generation_seed = Column(Integer, nullable=True)
    generation_time_ms = Column(Integer, nullable=True)

    success = Column(Boolean, default=False, nullable=False)
    entries_created = Column(Integer, default=0, nullable=False)
    shortfall_count = Column(Integer, default=0, nullable=False)

    notes = Column(Text, nullable=True)

    __table_args__ = (Index("ix_schedule_generated_at", "generated_at"),)
