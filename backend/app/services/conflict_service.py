from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.teaching_schedule import DayOfWeek, TeachingSchedule, parse_day

logger = logging.getLogger(__name__)

TEACHER_CONFLICT = "Teacher already has a class at this time"
CLASS_CONFLICT = "Class already has a lesson at this time"


class ScheduleCandidate(Protocol):
    academic_term_id: str
    class_id: str
    teacher_id: str
    time_slot_id: str
    day_of_week: DayOfWeek | int | str
    week_number: int


def _occupied(db: Session, candidate: ScheduleCandidate, day: DayOfWeek, *, column, value: str) -> bool:
    query = (
        select(TeachingSchedule.id)
        .where(
            TeachingSchedule.academic_term_id == candidate.academic_term_id,
            TeachingSchedule.week_number == candidate.week_number,
            TeachingSchedule.day_of_week == day,
            TeachingSchedule.time_slot_id == candidate.time_slot_id,
            TeachingSchedule.is_active.is_(True),
            column == value,
        )
        .limit(1)
    )
    return db.execute(query).scalar_one_or_none() is not None


def check_schedule_conflicts(db: Session, candidate: ScheduleCandidate) -> list[str]:
    """Report teacher and class double-booking for one prospective entry.

    Only persisted, active entries of the same term, week and weekday are
    considered. Findings are returned as data; the caller decides whether
    they block the write.
    """
    day = candidate.day_of_week
    if not isinstance(day, DayOfWeek):
        day = parse_day(day)

    conflicts: list[str] = []
    if _occupied(db, candidate, day, column=TeachingSchedule.teacher_id, value=candidate.teacher_id):
        conflicts.append(TEACHER_CONFLICT)
    if _occupied(db, candidate, day, column=TeachingSchedule.class_id, value=candidate.class_id):
        conflicts.append(CLASS_CONFLICT)

    if conflicts:
        logger.info(
            "Conflict check | term=%s class=%s teacher=%s day=%s slot=%s week=%s conflicts=%s",
            candidate.academic_term_id,
            candidate.class_id,
            candidate.teacher_id,
            day.value,
            candidate.time_slot_id,
            candidate.week_number,
            conflicts,
        )
    return conflicts
