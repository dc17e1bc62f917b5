from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import SchedulePersistenceError
from app.models.academic import AcademicTerm
from app.models.curriculum import CurriculumAssignment, CurriculumType
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher_assignment import TeacherAssignment
from app.models.teaching_schedule import TeachingSchedule
from app.schemas.schedule import SubjectCoverage

logger = logging.getLogger(__name__)


def count_term_schedules(db: Session, academic_term_id: str) -> int:
    return int(
        db.execute(
            select(func.count(TeachingSchedule.id)).where(TeachingSchedule.academic_term_id == academic_term_id)
        ).scalar_one()
    )


def delete_term_schedules(db: Session, academic_term_id: str) -> int:
    result = db.execute(delete(TeachingSchedule).where(TeachingSchedule.academic_term_id == academic_term_id))
    return result.rowcount or 0


def replace_term_schedules(
    db: Session,
    academic_term_id: str,
    entries: list[TeachingSchedule],
) -> int:
    """Swap a term's schedule for ``entries`` in one transaction.

    The term row is locked first (``FOR UPDATE`` where the dialect supports
    it). Any failure rolls back both the delete and the insert, so the term
    keeps its previous schedule.
    """
    step = "lock"
    try:
        db.execute(select(AcademicTerm.id).where(AcademicTerm.id == academic_term_id).with_for_update())
        step = "delete"
        deleted = delete_term_schedules(db, academic_term_id)
        step = "insert"
        db.add_all(entries)
        db.flush()
        step = "commit"
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "TEACHING SCHEDULE PERSIST FAILED | term=%s | step=%s | entries=%s",
            academic_term_id,
            step,
            len(entries),
        )
        raise SchedulePersistenceError(
            f"Saving the generated schedule failed during {step}; the previous schedule was kept",
            step=step,
        ) from exc

    logger.info(
        "TEACHING SCHEDULE PERSISTED | term=%s | deleted=%s | inserted=%s",
        academic_term_id,
        deleted,
        len(entries),
    )
    return deleted


def term_coverage(db: Session, academic_term_id: str) -> list[SubjectCoverage]:
    """Required vs persisted lesson counts per (class, subject) for a term.

    Elective rows of base classes are left out; those periods are served by
    the combined classes.
    """
    rows = db.execute(
        select(CurriculumAssignment, SchoolClass, Subject)
        .join(SchoolClass, SchoolClass.id == CurriculumAssignment.class_id)
        .join(Subject, Subject.id == CurriculumAssignment.subject_id)
        .where(CurriculumAssignment.academic_term_id == academic_term_id)
        .order_by(SchoolClass.name, SchoolClass.id, Subject.code)
    ).all()

    scheduled_counts = {
        (class_id, subject_id): count
        for class_id, subject_id, count in db.execute(
            select(TeachingSchedule.class_id, TeachingSchedule.subject_id, func.count(TeachingSchedule.id))
            .where(
                TeachingSchedule.academic_term_id == academic_term_id,
                TeachingSchedule.is_active.is_(True),
            )
            .group_by(TeachingSchedule.class_id, TeachingSchedule.subject_id)
        ).all()
    }
    teachers: dict[tuple[str, str], str] = {}
    for assignment in db.execute(
        select(TeacherAssignment)
        .where(
            TeacherAssignment.academic_term_id == academic_term_id,
            TeacherAssignment.is_active.is_(True),
        )
        .order_by(TeacherAssignment.created_at, TeacherAssignment.id)
    ).scalars():
        teachers.setdefault((assignment.class_id, assignment.subject_id), assignment.teacher_id)

    coverage: list[SubjectCoverage] = []
    for row, school_class, subject in rows:
        if row.type == CurriculumType.elective and not school_class.is_combined:
            continue
        key = (school_class.id, subject.id)
        teacher_id = teachers.get(key)
        scheduled = scheduled_counts.get(key, 0)
        shortfall = max(0, row.weekly_periods - scheduled)
        reason = None
        if shortfall:
            reason = "teacher_missing" if teacher_id is None else "no_slot"
        coverage.append(
            SubjectCoverage(
                class_id=school_class.id,
                class_name=school_class.name,
                subject_id=subject.id,
                subject_code=subject.code,
                teacher_id=teacher_id,
                required=row.weekly_periods,
                scheduled=scheduled,
                shortfall=shortfall,
                reason=reason,
            )
        )
    return coverage
