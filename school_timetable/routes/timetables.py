"""
API routes for timetable generation, validation and version management.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_timetable.errors import SchedulerError, VersionNotFoundError
from school_timetable.models.database import get_db
from school_timetable.models.repository import TimetableRepository
from school_timetable.schemas.schemas import (
    ActivateVersionRequest, ActivateVersionResponse, DetailedTimetableEntry,
    GenerateTimetableRequest, GenerationResult, SuggestionsResponse,
    TimetableEntryResponse, TimetableVersionResponse, ValidationResult,
)
from school_timetable.services.timetable_service import TimetableService

router = APIRouter(prefix="/api/timetable", tags=["timetable"])


def get_service(db: Session = Depends(get_db)) -> TimetableService:
    return TimetableService(TimetableRepository(db))


@router.post("/generate", response_model=GenerationResult)
async def generate_timetable(
    request: GenerateTimetableRequest,
    db: Session = Depends(get_db),
):
    service = TimetableService(TimetableRepository(db), seed=request.seed)
    return service.generate_timetable(class_id=request.class_id, school_id=request.school_id)


@router.get("/validate", response_model=ValidationResult)
async def validate_timetable(
    school_id: Optional[int] = None,
    service: TimetableService = Depends(get_service),
):
    return service.validate_timetable(school_id)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggest_optimizations(
    school_id: Optional[int] = None,
    service: TimetableService = Depends(get_service),
):
    return SuggestionsResponse(suggestions=service.suggest_optimizations(school_id))


@router.get("", response_model=List[TimetableEntryResponse])
async def get_timetable(
    class_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    version_id: Optional[int] = None,
    school_id: Optional[int] = None,
    service: TimetableService = Depends(get_service),
):
    try:
        return service.get_timetable(class_id, teacher_id, version_id, school_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error retrieving timetable: {str(e)}")


@router.get("/detailed", response_model=List[DetailedTimetableEntry])
async def get_detailed_timetable(
    class_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    version_id: Optional[int] = None,
    school_id: Optional[int] = None,
    service: TimetableService = Depends(get_service),
):
    try:
        return service.get_detailed_timetable(class_id, teacher_id, version_id, school_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error retrieving timetable: {str(e)}")


@router.get("/versions", response_model=List[TimetableVersionResponse])
async def list_versions(
    class_id: int,
    week_start: Optional[date] = None,
    week_end: Optional[date] = None,
    service: TimetableService = Depends(get_service),
):
    try:
        return service.list_versions(class_id, week_start, week_end)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching timetable versions: {str(e)}")


@router.post("/versions/{version_id}/activate", response_model=ActivateVersionResponse)
async def activate_version(
    version_id: int,
    request: ActivateVersionRequest,
    service: TimetableService = Depends(get_service),
):
    try:
        version = service.activate_version(version_id, request.class_id)
    except VersionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SchedulerError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error activating version: {str(e)}")

    return ActivateVersionResponse(
        success=True,
        message="Version activated successfully",
        version=TimetableVersionResponse.model_validate(version),
    )
