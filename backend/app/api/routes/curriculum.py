from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_schedule_manager
from app.models.academic import AcademicTerm, GradeLevel
from app.models.curriculum import CurriculumAssignment
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.teacher_assignment import TeacherAssignment
from app.models.user import User
from app.schemas.curriculum import (
    CurriculumAssignmentCreate,
    CurriculumAssignmentOut,
    TeacherAssignmentCreate,
    TeacherAssignmentOut,
)
from app.services.audit import log_activity

router = APIRouter()


def _require(db: Session, model, entity_id: str | None, label: str) -> None:
    if entity_id is not None and db.get(model, entity_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")


@router.get("/curriculum-assignments", response_model=list[CurriculumAssignmentOut])
def list_curriculum_assignments(
    academic_term_id: str | None = None,
    class_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[CurriculumAssignmentOut]:
    query = select(CurriculumAssignment).order_by(CurriculumAssignment.created_at, CurriculumAssignment.id)
    if academic_term_id:
        query = query.where(CurriculumAssignment.academic_term_id == academic_term_id)
    if class_id:
        query = query.where(CurriculumAssignment.class_id == class_id)
    return list(db.execute(query).scalars())


@router.post(
    "/curriculum-assignments",
    response_model=CurriculumAssignmentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_curriculum_assignment(
    payload: CurriculumAssignmentCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> CurriculumAssignmentOut:
    _require(db, AcademicTerm, payload.academic_term_id, "Academic term")
    _require(db, Subject, payload.subject_id, "Subject")
    _require(db, SchoolClass, payload.class_id, "Class")
    _require(db, GradeLevel, payload.grade_level_id, "Grade level")

    duplicate = db.execute(
        select(CurriculumAssignment).where(
            CurriculumAssignment.academic_term_id == payload.academic_term_id,
            CurriculumAssignment.subject_id == payload.subject_id,
            CurriculumAssignment.class_id.is_(None)
            if payload.class_id is None
            else CurriculumAssignment.class_id == payload.class_id,
            CurriculumAssignment.grade_level_id.is_(None)
            if payload.grade_level_id is None
            else CurriculumAssignment.grade_level_id == payload.grade_level_id,
        )
    ).scalar_one_or_none()
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Curriculum already defines this subject for the same scope",
        )

    row = CurriculumAssignment(**payload.model_dump())
    db.add(row)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="curriculum_assignment.create",
        entity_type="curriculum_assignment",
        entity_id=row.id,
        academic_term_id=row.academic_term_id,
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/curriculum-assignments/{assignment_id}")
def delete_curriculum_assignment(
    assignment_id: str,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> dict:
    row = db.get(CurriculumAssignment, assignment_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Curriculum assignment not found")
    log_activity(
        db,
        user=current_user,
        action="curriculum_assignment.delete",
        entity_type="curriculum_assignment",
        entity_id=row.id,
        academic_term_id=row.academic_term_id,
    )
    db.delete(row)
    db.commit()
    return {"success": True}


@router.get("/teacher-assignments", response_model=list[TeacherAssignmentOut])
def list_teacher_assignments(
    academic_term_id: str | None = None,
    teacher_id: str | None = None,
    class_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TeacherAssignmentOut]:
    query = select(TeacherAssignment).order_by(TeacherAssignment.created_at, TeacherAssignment.id)
    if academic_term_id:
        query = query.where(TeacherAssignment.academic_term_id == academic_term_id)
    if teacher_id:
        query = query.where(TeacherAssignment.teacher_id == teacher_id)
    if class_id:
        query = query.where(TeacherAssignment.class_id == class_id)
    return list(db.execute(query).scalars())


@router.post("/teacher-assignments", response_model=TeacherAssignmentOut, status_code=status.HTTP_201_CREATED)
def create_teacher_assignment(
    payload: TeacherAssignmentCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> TeacherAssignmentOut:
    _require(db, AcademicTerm, payload.academic_term_id, "Academic term")
    _require(db, Teacher, payload.teacher_id, "Teacher")
    _require(db, SchoolClass, payload.class_id, "Class")
    _require(db, Subject, payload.subject_id, "Subject")

    if payload.is_active:
        active = db.execute(
            select(TeacherAssignment).where(
                TeacherAssignment.academic_term_id == payload.academic_term_id,
                TeacherAssignment.class_id == payload.class_id,
                TeacherAssignment.subject_id == payload.subject_id,
                TeacherAssignment.is_active.is_(True),
            )
        ).scalar_one_or_none()
        if active:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This class and subject already have an active teacher for the term",
            )

    row = TeacherAssignment(**payload.model_dump())
    db.add(row)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="teacher_assignment.create",
        entity_type="teacher_assignment",
        entity_id=row.id,
        academic_term_id=row.academic_term_id,
        details={"teacher_id": row.teacher_id, "class_id": row.class_id, "subject_id": row.subject_id},
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/teacher-assignments/{assignment_id}")
def delete_teacher_assignment(
    assignment_id: str,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> dict:
    row = db.get(TeacherAssignment, assignment_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher assignment not found")
    log_activity(
        db,
        user=current_user,
        action="teacher_assignment.delete",
        entity_type="teacher_assignment",
        entity_id=row.id,
        academic_term_id=row.academic_term_id,
    )
    db.delete(row)
    db.commit()
    return {"success": True}
