from __future__ import annotations

import logging
from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_schedule_manager
from app.core.exceptions import GenerationInProgressError
from app.models.academic import AcademicTerm
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.teaching_schedule import TeachingSchedule, parse_day
from app.models.time_slot import TimeSlot
from app.models.user import User
from app.schemas.schedule import (
    ConflictCheckResponse,
    CoverageReport,
    DeleteSchedulesResponse,
    GenerateScheduleRequest,
    GenerateScheduleResponse,
    GenerationStats,
    ManualScheduleResponse,
    SubjectCoverage,
    TeachingScheduleBase,
    TeachingScheduleCreate,
    TeachingScheduleOut,
)
from app.services.audit import log_activity
from app.services.conflict_service import check_schedule_conflicts
from app.services.generation_lock import generation_running
from app.services.schedule_generator import CoverageRecord, GenerationResult, TeachingScheduleGenerator
from app.services.schedule_persistence import delete_term_schedules, term_coverage

router = APIRouter()
logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Tạo thời khóa biểu thành công"


def _coverage_out(result: GenerationResult, records: list[CoverageRecord]) -> list[SubjectCoverage]:
    classes = result.catalog.classes if result.catalog else {}
    subjects = result.catalog.subjects if result.catalog else {}
    items: list[SubjectCoverage] = []
    for record in records:
        class_record = classes.get(record.class_id)
        subject_record = subjects.get(record.subject_id)
        items.append(
            SubjectCoverage(
                class_id=record.class_id,
                class_name=class_record.name if class_record else None,
                subject_id=record.subject_id,
                subject_code=subject_record.code if subject_record else None,
                teacher_id=record.teacher_id,
                required=record.required,
                scheduled=record.scheduled,
                shortfall=record.shortfall,
                reason=record.reason,
            )
        )
    return items


def _ensure_references(db: Session, payload: TeachingScheduleBase) -> None:
    references = (
        (AcademicTerm, payload.academic_term_id, "Academic term"),
        (SchoolClass, payload.class_id, "Class"),
        (Teacher, payload.teacher_id, "Teacher"),
        (Subject, payload.subject_id, "Subject"),
        (TimeSlot, payload.time_slot_id, "Time slot"),
    )
    for model, entity_id, label in references:
        if db.get(model, entity_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    slot = db.get(TimeSlot, payload.time_slot_id)
    if slot.is_break:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Lessons cannot be placed in a break slot")


@router.post(
    "/teaching-schedules/generate",
    response_model=GenerateScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_teaching_schedules(
    payload: GenerateScheduleRequest,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> GenerateScheduleResponse:
    started = perf_counter()
    logger.info(
        "TEACHING SCHEDULE GENERATE REQUEST | user_id=%s | term=%s",
        current_user.id,
        payload.academic_term_id,
    )
    try:
        generator = TeachingScheduleGenerator(
            db=db,
            academic_term_id=payload.academic_term_id,
            options=payload.settings,
        )
        result = generator.run()
    except Exception:
        db.rollback()
        logger.exception(
            "TEACHING SCHEDULE GENERATE FAILED | user_id=%s | term=%s | wall_ms=%s",
            current_user.id,
            payload.academic_term_id,
            int((perf_counter() - started) * 1000),
        )
        raise

    log_activity(
        db,
        user=current_user,
        action="teaching_schedule.generate",
        entity_type="academic_term",
        entity_id=payload.academic_term_id,
        academic_term_id=payload.academic_term_id,
        details={
            "total_lessons": result.total_lessons,
            "classes_scheduled": result.classes_scheduled,
            "teachers_assigned": result.teachers_assigned,
            "shortfalls": len(result.shortfalls),
        },
    )
    db.commit()

    return GenerateScheduleResponse(
        message=SUCCESS_MESSAGE,
        academic_term_id=payload.academic_term_id,
        schedules=[TeachingScheduleOut.model_validate(entry) for entry in result.entries],
        stats=GenerationStats(
            total_lessons=result.total_lessons,
            classes_scheduled=result.classes_scheduled,
            teachers_assigned=result.teachers_assigned,
        ),
        coverage=_coverage_out(result, result.coverage),
        shortfalls=_coverage_out(result, result.shortfalls),
        state_trace=list(result.state_trace),
        settings_used=payload.settings,
        runtime_ms=result.runtime_ms,
    )


@router.post(
    "/teaching-schedules",
    response_model=ManualScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_teaching_schedule(
    payload: TeachingScheduleCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
):
    _ensure_references(db, payload)
    conflicts = check_schedule_conflicts(db, payload)
    if conflicts and not payload.allow_conflicts:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"message": "Schedule conflicts detected", "conflicts": conflicts},
        )
    if conflicts:
        logger.warning(
            "MANUAL SCHEDULE INSERTED WITH CONFLICTS | user_id=%s | term=%s | class=%s | teacher=%s | conflicts=%s",
            current_user.id,
            payload.academic_term_id,
            payload.class_id,
            payload.teacher_id,
            conflicts,
        )

    entry = TeachingSchedule(**payload.model_dump(exclude={"allow_conflicts"}))
    db.add(entry)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="teaching_schedule.create",
        entity_type="teaching_schedule",
        entity_id=entry.id,
        academic_term_id=entry.academic_term_id,
        details={"conflicts": conflicts},
    )
    db.commit()
    db.refresh(entry)
    return ManualScheduleResponse(schedule=TeachingScheduleOut.model_validate(entry), conflicts=conflicts)


@router.post("/teaching-schedules/check-conflicts", response_model=ConflictCheckResponse)
def check_teaching_schedule_conflicts(
    payload: TeachingScheduleBase,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ConflictCheckResponse:
    return ConflictCheckResponse(conflicts=check_schedule_conflicts(db, payload))


@router.get("/teaching-schedules", response_model=list[TeachingScheduleOut])
def list_teaching_schedules(
    academic_term_id: str | None = None,
    class_id: str | None = None,
    teacher_id: str | None = None,
    subject_id: str | None = None,
    day_of_week: str | None = None,
    week_number: int | None = Query(default=None, ge=1, le=53),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TeachingScheduleOut]:
    query = select(TeachingSchedule, TimeSlot.order_index).join(
        TimeSlot, TimeSlot.id == TeachingSchedule.time_slot_id
    )
    if academic_term_id:
        query = query.where(TeachingSchedule.academic_term_id == academic_term_id)
    if class_id:
        query = query.where(TeachingSchedule.class_id == class_id)
    if teacher_id:
        query = query.where(TeachingSchedule.teacher_id == teacher_id)
    if subject_id:
        query = query.where(TeachingSchedule.subject_id == subject_id)
    if day_of_week:
        try:
            day = parse_day(day_of_week)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="day_of_week must be 1-7 or a weekday name",
            ) from exc
        query = query.where(TeachingSchedule.day_of_week == day)
    if week_number is not None:
        query = query.where(TeachingSchedule.week_number == week_number)

    rows = db.execute(query).all()
    rows.sort(key=lambda row: (row[0].week_number, row[0].day_of_week.number, row[1]))
    return [row[0] for row in rows]


@router.delete("/teaching-schedules", response_model=DeleteSchedulesResponse)
def delete_teaching_schedules(
    academic_term_id: str | None = None,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> DeleteSchedulesResponse:
    if not academic_term_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Academic term ID is required")
    if generation_running(academic_term_id):
        raise GenerationInProgressError(academic_term_id)

    deleted = delete_term_schedules(db, academic_term_id)
    log_activity(
        db,
        user=current_user,
        action="teaching_schedule.delete",
        entity_type="academic_term",
        entity_id=academic_term_id,
        academic_term_id=academic_term_id,
        details={"deleted": deleted},
    )
    db.commit()
    logger.info(
        "TEACHING SCHEDULE DELETE | user_id=%s | term=%s | deleted=%s",
        current_user.id,
        academic_term_id,
        deleted,
    )
    return DeleteSchedulesResponse(message=f"Deleted {deleted} teaching schedules", deleted=deleted)


@router.get("/teaching-schedules/coverage", response_model=CoverageReport)
def get_teaching_schedule_coverage(
    academic_term_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CoverageReport:
    if db.get(AcademicTerm, academic_term_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic term not found")
    coverage = term_coverage(db, academic_term_id)
    return CoverageReport(
        academic_term_id=academic_term_id,
        coverage=coverage,
        under_filled=sum(1 for item in coverage if item.shortfall > 0),
    )
