import os

# Point the app engine at SQLite before any settings are cached.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.academic import AcademicTerm, AcademicYear, GradeLevel  # noqa: E402
from app.models.curriculum import CurriculumAssignment, CurriculumType  # noqa: E402
from app.models.schedule_constraint import ConstraintType, ScheduleConstraint  # noqa: E402
from app.models.school_class import SchoolClass  # noqa: E402
from app.models.subject import Subject  # noqa: E402
from app.models.teacher import Teacher  # noqa: E402
from app.models.teacher_assignment import TeacherAssignment  # noqa: E402
from app.models.teaching_schedule import DayOfWeek  # noqa: E402
from app.models.time_slot import TimeSlot  # noqa: E402
from app.services.generation_lock import clear_generation_locks  # noqa: E402


def _sqlite_engine():
    return create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def client():
    clear_generation_locks()
    engine = _sqlite_engine()
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    clear_generation_locks()


@pytest.fixture()
def db_session():
    clear_generation_locks()
    engine = _sqlite_engine()
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
        clear_generation_locks()


class SchoolBuilder:
    """Creates catalog rows for service-level tests."""

    def __init__(self, db):
        self.db = db
        self.year = AcademicYear(name="2026-2027", start_date=date(2026, 9, 1), end_date=date(2027, 5, 31))
        db.add(self.year)
        db.flush()
        self.term = self.add_term("Term 1")
        self._grades: dict[int, GradeLevel] = {}

    def add_term(self, name):
        term = AcademicTerm(
            academic_year_id=self.year.id,
            name=name,
            start_date=date(2026, 9, 1),
            end_date=date(2027, 1, 15),
        )
        self.db.add(term)
        self.db.flush()
        return term

    def grade(self, level=10):
        if level not in self._grades:
            grade = GradeLevel(level=level, name=f"Grade {level}")
            self.db.add(grade)
            self.db.flush()
            self._grades[level] = grade
        return self._grades[level]

    def school_class(self, name, *, level=10, combined=False, room=None):
        school_class = SchoolClass(
            academic_year_id=self.year.id,
            grade_level_id=self.grade(level).id,
            name=name,
            is_combined=combined,
            room_number=room,
        )
        self.db.add(school_class)
        self.db.flush()
        return school_class

    def subject(self, code, name=None):
        subject = Subject(code=code, name=name or code.title())
        self.db.add(subject)
        self.db.flush()
        return subject

    def teacher(self, name):
        teacher = Teacher(full_name=name, email=f"{name.lower().replace(' ', '.')}@school.test")
        self.db.add(teacher)
        self.db.flush()
        return teacher

    def time_slots(self, count=8, breaks=()):
        slots = []
        for order in range(1, count + 1):
            start = 7 * 60 + (order - 1) * 50
            slot = TimeSlot(
                name=f"Period {order}",
                start_time=f"{start // 60:02d}:{start % 60:02d}",
                end_time=f"{(start + 45) // 60:02d}:{(start + 45) % 60:02d}",
                order_index=order,
                is_break=order in breaks,
            )
            self.db.add(slot)
            slots.append(slot)
        self.db.flush()
        return slots

    def curriculum(self, subject, periods, *, school_class=None, level=None, elective=False, term=None):
        row = CurriculumAssignment(
            academic_term_id=(term or self.term).id,
            subject_id=subject.id,
            class_id=school_class.id if school_class is not None else None,
            grade_level_id=self.grade(level).id if level is not None else None,
            type=CurriculumType.elective if elective else CurriculumType.mandatory,
            weekly_periods=periods,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def assign(self, teacher, school_class, subject, *, term=None):
        row = TeacherAssignment(
            academic_term_id=(term or self.term).id,
            teacher_id=teacher.id,
            class_id=school_class.id,
            subject_id=subject.id,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def teacher_unavailable(self, teacher, day, slot, *, term=None):
        constraint = ScheduleConstraint(
            academic_term_id=(term or self.term).id,
            constraint_type=ConstraintType.teacher_unavailable,
            teacher_id=teacher.id,
            day_of_week=DayOfWeek.from_number(day),
            time_slot_id=slot.id,
        )
        self.db.add(constraint)
        self.db.flush()
        return constraint

    def class_unavailable(self, school_class, day, slot, *, term=None):
        constraint = ScheduleConstraint(
            academic_term_id=(term or self.term).id,
            constraint_type=ConstraintType.class_unavailable,
            class_id=school_class.id,
            day_of_week=DayOfWeek.from_number(day),
            time_slot_id=slot.id,
        )
        self.db.add(constraint)
        self.db.flush()
        return constraint

    def commit(self):
        self.db.commit()


@pytest.fixture()
def school(db_session):
    return SchoolBuilder(db_session)
