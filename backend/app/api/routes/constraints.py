from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_schedule_manager
from app.models.academic import AcademicTerm
from app.models.schedule_constraint import ScheduleConstraint
from app.models.school_class import SchoolClass
from app.models.teacher import Teacher
from app.models.time_slot import TimeSlot
from app.models.user import User
from app.schemas.constraints import ScheduleConstraintCreate, ScheduleConstraintOut
from app.services.audit import log_activity

router = APIRouter()


@router.get("/schedule-constraints", response_model=list[ScheduleConstraintOut])
def list_schedule_constraints(
    academic_term_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ScheduleConstraintOut]:
    query = select(ScheduleConstraint).order_by(ScheduleConstraint.created_at, ScheduleConstraint.id)
    if academic_term_id:
        # Term-less constraints apply to every term.
        query = query.where(
            or_(
                ScheduleConstraint.academic_term_id == academic_term_id,
                ScheduleConstraint.academic_term_id.is_(None),
            )
        )
    return list(db.execute(query).scalars())


@router.post("/schedule-constraints", response_model=ScheduleConstraintOut, status_code=status.HTTP_201_CREATED)
def create_schedule_constraint(
    payload: ScheduleConstraintCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> ScheduleConstraintOut:
    references = (
        (AcademicTerm, payload.academic_term_id, "Academic term"),
        (Teacher, payload.teacher_id, "Teacher"),
        (SchoolClass, payload.class_id, "Class"),
        (TimeSlot, payload.time_slot_id, "Time slot"),
    )
    for model, entity_id, label in references:
        if entity_id is not None and db.get(model, entity_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")

    constraint = ScheduleConstraint(**payload.model_dump())
    db.add(constraint)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="schedule_constraint.create",
        entity_type="schedule_constraint",
        entity_id=constraint.id,
        academic_term_id=constraint.academic_term_id,
        details={"constraint_type": constraint.constraint_type.value, "day_of_week": constraint.day_of_week.value},
    )
    db.commit()
    db.refresh(constraint)
    return constraint


@router.delete("/schedule-constraints/{constraint_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule_constraint(
    constraint_id: str,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> None:
    constraint = db.get(ScheduleConstraint, constraint_id)
    if constraint is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule constraint not found")
    log_activity(
        db,
        user=current_user,
        action="schedule_constraint.delete",
        entity_type="schedule_constraint",
        entity_id=constraint.id,
        academic_term_id=constraint.academic_term_id,
    )
    db.delete(constraint)
    db.commit()
