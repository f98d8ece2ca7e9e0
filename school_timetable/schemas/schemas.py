"""
Pydantic schemas for the scheduler's results and API payloads.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from school_timetable.models.models import DayOfWeek


# Time structure configuration
class TimeSlotConfig(BaseModel):
    period: int = Field(..., ge=0)  # breaks may use 0
    start_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    is_break: bool = False


class TimetableStructureConfig(BaseModel):
    working_days: List[DayOfWeek] = Field(default_factory=list)
    time_slots: List[TimeSlotConfig] = Field(default_factory=list)


# Generation
class GenerateTimetableRequest(BaseModel):
    class_id: Optional[int] = None
    school_id: Optional[int] = None
    seed: Optional[int] = None


class GenerationResult(BaseModel):
    success: bool
    message: str
    entries_created: Optional[int] = None
    version: Optional[str] = None


# Validation / advice
class ValidationResult(BaseModel):
    is_valid: bool
    conflicts: List[str]


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


# Timetable entries and versions
class TimetableEntryResponse(BaseModel):
    id: int
    class_id: int
    teacher_id: int
    subject_id: int
    day: DayOfWeek
    period: int
    start_time: str
    end_time: str
    room: Optional[str] = None
    version_id: Optional[int] = None
    is_active: bool

    class Config:
        from_attributes = True


class DetailedTimetableEntry(TimetableEntryResponse):
    teacher_name: Optional[str] = None
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    class_label: Optional[str] = None


class TimetableVersionResponse(BaseModel):
    id: int
    class_id: int
    version: str
    week_start: date
    week_end: date
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivateVersionRequest(BaseModel):
    class_id: Optional[int] = None


class ActivateVersionResponse(BaseModel):
    success: bool
    message: str
    version: Optional[TimetableVersionResponse] = None
