from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError
from app.models.academic import AcademicTerm
from app.models.curriculum import CurriculumType
from app.models.schedule_constraint import ConstraintType, ScheduleConstraint
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher_assignment import TeacherAssignment
from app.models.time_slot import TimeSlot
from app.services.curriculum_normalizer import normalize_curriculum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassRecord:
    id: str
    name: str
    is_combined: bool
    room_number: str | None = None


@dataclass(frozen=True)
class SubjectRecord:
    id: str
    code: str
    name: str


@dataclass(frozen=True)
class CurriculumRecord:
    class_id: str
    subject_id: str
    type: CurriculumType
    weekly_periods: int


@dataclass(frozen=True)
class TeacherAssignmentRecord:
    teacher_id: str
    class_id: str
    subject_id: str


@dataclass(frozen=True)
class TimeSlotRecord:
    id: str
    order_index: int
    is_break: bool = False
    name: str = ""


@dataclass(frozen=True)
class ConstraintRecord:
    constraint_type: ConstraintType
    day: int
    time_slot_id: str
    teacher_id: str | None = None
    class_id: str | None = None


@dataclass(frozen=True)
class GenerationCatalog:
    academic_term_id: str
    curriculum: tuple[CurriculumRecord, ...]
    teacher_assignments: tuple[TeacherAssignmentRecord, ...]
    time_slots: tuple[TimeSlotRecord, ...]
    constraints: tuple[ConstraintRecord, ...]
    classes: dict[str, ClassRecord]
    subjects: dict[str, SubjectRecord]


def load_generation_catalog(db: Session, academic_term_id: str) -> GenerationCatalog:
    term = db.get(AcademicTerm, academic_term_id)
    if term is None:
        raise ResourceNotFoundError("Academic term", academic_term_id)

    curriculum_rows = normalize_curriculum(db, academic_term_id)
    curriculum = tuple(
        CurriculumRecord(
            class_id=row.class_id,
            subject_id=row.subject_id,
            type=row.type,
            weekly_periods=row.weekly_periods,
        )
        for row in curriculum_rows
        if row.class_id is not None
    )

    assignments = tuple(
        TeacherAssignmentRecord(teacher_id=row.teacher_id, class_id=row.class_id, subject_id=row.subject_id)
        for row in db.execute(
            select(TeacherAssignment)
            .where(
                TeacherAssignment.academic_term_id == academic_term_id,
                TeacherAssignment.is_active.is_(True),
            )
            .order_by(TeacherAssignment.created_at, TeacherAssignment.id)
        ).scalars()
    )

    time_slots = tuple(
        TimeSlotRecord(id=row.id, order_index=row.order_index, is_break=row.is_break, name=row.name)
        for row in db.execute(select(TimeSlot).order_by(TimeSlot.order_index)).scalars()
    )

    constraints = tuple(
        ConstraintRecord(
            constraint_type=row.constraint_type,
            day=row.day_of_week.number,
            time_slot_id=row.time_slot_id,
            teacher_id=row.teacher_id,
            class_id=row.class_id,
        )
        for row in db.execute(
            select(ScheduleConstraint).where(
                ScheduleConstraint.is_active.is_(True),
                or_(
                    ScheduleConstraint.academic_term_id == academic_term_id,
                    ScheduleConstraint.academic_term_id.is_(None),
                ),
            )
        ).scalars()
    )

    class_ids = {row.class_id for row in curriculum}
    classes = {
        row.id: ClassRecord(id=row.id, name=row.name, is_combined=row.is_combined, room_number=row.room_number)
        for row in db.execute(select(SchoolClass).where(SchoolClass.id.in_(class_ids))).scalars()
    } if class_ids else {}

    subject_ids = {row.subject_id for row in curriculum}
    subjects = {
        row.id: SubjectRecord(id=row.id, code=row.code, name=row.name)
        for row in db.execute(select(Subject).where(Subject.id.in_(subject_ids))).scalars()
    } if subject_ids else {}

    logger.info(
        "Catalog loaded | term=%s curriculum=%s teacher_assignments=%s time_slots=%s constraints=%s",
        academic_term_id,
        len(curriculum),
        len(assignments),
        len(time_slots),
        len(constraints),
    )
    return GenerationCatalog(
        academic_term_id=academic_term_id,
        curriculum=curriculum,
        teacher_assignments=assignments,
        time_slots=time_slots,
        constraints=constraints,
        classes=classes,
        subjects=subjects,
    )
