from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_schedule_manager
from app.models.academic import AcademicTerm, AcademicYear, GradeLevel
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.time_slot import TimeSlot
from app.models.user import User
from app.schemas.catalog import (
    AcademicTermCreate,
    AcademicTermOut,
    AcademicYearCreate,
    AcademicYearOut,
    GradeLevelCreate,
    GradeLevelOut,
    SchoolClassCreate,
    SchoolClassOut,
    SubjectCreate,
    SubjectOut,
    TeacherCreate,
    TeacherOut,
    TimeSlotCreate,
    TimeSlotOut,
)
from app.services.audit import log_activity

router = APIRouter()



def _get_or_404(db: Session, model, entity_id: str, label: str):
    entity = db.get(model, entity_id)
    if entity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return entity


def _delete(db: Session, entity, *, current_user: User, entity_type: str) -> dict:
    log_activity(db, user=current_user, action=f"{entity_type}.delete", entity_type=entity_type, entity_id=entity.id)
    db.delete(entity)
    db.commit()
    return {"success": True}


@router.get("/academic-years", response_model=list[AcademicYearOut])
def list_academic_years(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> list[AcademicYearOut]:
    return list(db.execute(select(AcademicYear).order_by(AcademicYear.start_date)).scalars())


@router.post("/academic-years", response_model=AcademicYearOut, status_code=status.HTTP_201_CREATED)
def create_academic_year(
    payload: AcademicYearCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    existing = db.execute(select(AcademicYear).where(AcademicYear.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Academic year already exists")
    year = AcademicYear(**payload.model_dump())
    db.add(year)
    db.flush()
    log_activity(db, user=current_user, action="academic_year.create", entity_type="academic_year", entity_id=year.id)
    db.commit()
    db.refresh(year)
    return year


@router.delete("/academic-years/{year_id}")
def delete_academic_year(
    year_id: str, current_user: User = Depends(require_schedule_manager), db: Session = Depends(get_db)
) -> dict:
    year = _get_or_404(db, AcademicYear, year_id, "Academic year")
    return _delete(db, year, current_user=current_user, entity_type="academic_year")


@router.get("/academic-terms", response_model=list[AcademicTermOut])
def list_academic_terms(
    academic_year_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AcademicTermOut]:
    query = select(AcademicTerm).order_by(AcademicTerm.start_date)
    if academic_year_id:
        query = query.where(AcademicTerm.academic_year_id == academic_year_id)
    return list(db.execute(query).scalars())


@router.post("/academic-terms", response_model=AcademicTermOut, status_code=status.HTTP_201_CREATED)
def create_academic_term(
    payload: AcademicTermCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> AcademicTermOut:
    _get_or_404(db, AcademicYear, payload.academic_year_id, "Academic year")
    term = AcademicTerm(**payload.model_dump())
    db.add(term)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="academic_term.create",
        entity_type="academic_term",
        entity_id=term.id,
        academic_term_id=term.id,
    )
    db.commit()
    db.refresh(term)
    return term


@router.delete("/academic-terms/{term_id}")
def delete_academic_term(
    term_id: str, current_user: User = Depends(require_schedule_manager), db: Session = Depends(get_db)
) -> dict:
    term = _get_or_404(db, AcademicTerm, term_id, "Academic term")
    return _delete(db, term, current_user=current_user, entity_type="academic_term")


@router.get("/grade-levels", response_model=list[GradeLevelOut])
def list_grade_levels(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> list[GradeLevelOut]:
    return list(db.execute(select(GradeLevel).order_by(GradeLevel.level)).scalars())


@router.post("/grade-levels", response_model=GradeLevelOut, status_code=status.HTTP_201_CREATED)
def create_grade_level(
    payload: GradeLevelCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> GradeLevelOut:
    existing = db.execute(select(GradeLevel).where(GradeLevel.level == payload.level)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Grade level already exists")
    grade = GradeLevel(**payload.model_dump())
    db.add(grade)
    db.commit()
    db.refresh(grade)
    return grade


@router.get("/classes", response_model=list[SchoolClassOut])
def list_classes(
    academic_year_id: str | None = None,
    grade_level_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[SchoolClassOut]:
    query = select(SchoolClass).order_by(SchoolClass.name)
    if academic_year_id:
        query = query.where(SchoolClass.academic_year_id == academic_year_id)
    if grade_level_id:
        query = query.where(SchoolClass.grade_level_id == grade_level_id)
    return list(db.execute(query).scalars())


@router.post("/classes", response_model=SchoolClassOut, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: SchoolClassCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> SchoolClassOut:
    _get_or_404(db, AcademicYear, payload.academic_year_id, "Academic year")
    _get_or_404(db, GradeLevel, payload.grade_level_id, "Grade level")
    existing = db.execute(
        select(SchoolClass).where(
            SchoolClass.academic_year_id == payload.academic_year_id,
            SchoolClass.name == payload.name,
        )
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class name already exists for this year")
    school_class = SchoolClass(**payload.model_dump())
    db.add(school_class)
    db.flush()
    log_activity(db, user=current_user, action="class.create", entity_type="class", entity_id=school_class.id)
    db.commit()
    db.refresh(school_class)
    return school_class


@router.delete("/classes/{class_id}")
def delete_class(
    class_id: str, current_user: User = Depends(require_schedule_manager), db: Session = Depends(get_db)
) -> dict:
    school_class = _get_or_404(db, SchoolClass, class_id, "Class")
    return _delete(db, school_class, current_user=current_user, entity_type="class")


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> list[SubjectOut]:
    return list(db.execute(select(Subject).order_by(Subject.code)).scalars())


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> SubjectOut:
    existing = db.execute(select(Subject).where(Subject.code == payload.code)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject code already exists")
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.delete("/subjects/{subject_id}")
def delete_subject(
    subject_id: str, current_user: User = Depends(require_schedule_manager), db: Session = Depends(get_db)
) -> dict:
    subject = _get_or_404(db, Subject, subject_id, "Subject")
    return _delete(db, subject, current_user=current_user, entity_type="subject")


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> list[TeacherOut]:
    return list(db.execute(select(Teacher).order_by(Teacher.full_name)).scalars())


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> TeacherOut:
    existing = db.execute(select(Teacher).where(Teacher.email == payload.email)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")
    if payload.user_id is not None:
        _get_or_404(db, User, payload.user_id, "User")
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    db.flush()
    log_activity(db, user=current_user, action="teacher.create", entity_type="teacher", entity_id=teacher.id)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.delete("/teachers/{teacher_id}")
def delete_teacher(
    teacher_id: str, current_user: User = Depends(require_schedule_manager), db: Session = Depends(get_db)
) -> dict:
    teacher = _get_or_404(db, Teacher, teacher_id, "Teacher")
    return _delete(db, teacher, current_user=current_user, entity_type="teacher")


@router.get("/time-slots", response_model=list[TimeSlotOut])
def list_time_slots(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> list[TimeSlotOut]:
    return list(db.execute(select(TimeSlot).order_by(TimeSlot.order_index)).scalars())


@router.post("/time-slots", response_model=TimeSlotOut, status_code=status.HTTP_201_CREATED)
def create_time_slot(
    payload: TimeSlotCreate,
    current_user: User = Depends(require_schedule_manager),
    db: Session = Depends(get_db),
) -> TimeSlotOut:
    existing = db.execute(select(TimeSlot).where(TimeSlot.order_index == payload.order_index)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A time slot already uses this order index")
    slot = TimeSlot(**payload.model_dump())
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


@router.delete("/time-slots/{slot_id}")
def delete_time_slot(
    slot_id: str, current_user: User = Depends(require_schedule_manager), db: Session = Depends(get_db)
) -> dict:
    slot = _get_or_404(db, TimeSlot, slot_id, "Time slot")
    return _delete(db, slot, current_user=current_user, entity_type="time_slot")
