"""Seed a demo secondary school for the timetable generator.

Run:
  PYTHONPATH=backend python scripts/seed_school_data.py
"""

from __future__ import annotations

from datetime import date
import os

from sqlalchemy import func, select

from app.core.security import get_password_hash
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.db.session import SessionLocal
from app.models.academic import AcademicTerm, AcademicYear, GradeLevel
from app.models.curriculum import CurriculumAssignment, CurriculumType
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.teacher_assignment import TeacherAssignment
from app.models.time_slot import TimeSlot
from app.models.user import User, UserRole

DEFAULT_PASSWORD = os.getenv("SEED_DEFAULT_PASSWORD", "Timetable123!")
RESET_PASSWORDS = os.getenv("SEED_RESET_PASSWORDS", "true").strip().lower() in {"1", "true", "yes", "on"}
EMAIL_DOMAIN = os.getenv("SEED_EMAIL_DOMAIN", "school.edu.vn").strip().lower() or "school.edu.vn"
ACADEMIC_YEAR = os.getenv("SEED_ACADEMIC_YEAR", "2026-2027").strip() or "2026-2027"
TERM_NAME = "Học kỳ 1"

ADMIN_PROFILE = {"name": "Ban Giám Hiệu", "email": f"admin@{EMAIL_DOMAIN}", "role": UserRole.admin}
SCHEDULER_PROFILE = {"name": "Tổ Giáo Vụ", "email": f"giaovu@{EMAIL_DOMAIN}", "role": UserRole.scheduler}

GRADES = {10: ["10A1", "10A2", "10A3"], 11: ["11A1", "11A2"]}
COMBINED_CLASSES = {10: "10 Tự chọn"}

SUBJECTS: list[tuple[str, str, int, CurriculumType]] = [
    ("MATH", "Toán", 4, CurriculumType.mandatory),
    ("LIT", "Ngữ văn", 4, CurriculumType.mandatory),
    ("ENG", "Tiếng Anh", 3, CurriculumType.mandatory),
    ("PHYS", "Vật lý", 2, CurriculumType.mandatory),
    ("CHEM", "Hóa học", 2, CurriculumType.mandatory),
    ("HIST", "Lịch sử", 2, CurriculumType.mandatory),
    ("PE", "Giáo dục thể chất", 2, CurriculumType.mandatory),
    ("TECH", "Công nghệ", 2, CurriculumType.elective),
    ("MUSIC", "Âm nhạc", 2, CurriculumType.elective),
]

TEACHERS: list[tuple[str, list[str]]] = [
    ("Nguyễn Văn An", ["MATH"]),
    ("Trần Thị Bình", ["MATH"]),
    ("Lê Thu Cúc", ["LIT"]),
    ("Phạm Minh Dũng", ["LIT", "HIST"]),
    ("Hoàng Lan Em", ["ENG"]),
    ("Vũ Quốc Giang", ["PHYS", "TECH"]),
    ("Đặng Thị Hà", ["CHEM"]),
    ("Bùi Văn Khoa", ["PE", "MUSIC"]),
]

# (order_index, start, end, is_break)
TIME_SLOTS: list[tuple[int, str, str, bool]] = [
    (1, "07:00", "07:45", False),
    (2, "07:50", "08:35", False),
    (3, "08:50", "09:35", False),
    (4, "09:40", "10:25", False),
    (5, "10:30", "11:15", False),
    (6, "13:30", "14:15", False),
    (7, "14:20", "15:05", False),
    (8, "15:20", "16:05", False),
]


def teacher_email(name: str) -> str:
    ascii_name = name.encode("ascii", "ignore").decode().lower().split()
    return f"{'.'.join(ascii_name) or 'teacher'}@{EMAIL_DOMAIN}"


def upsert_user(session, *, name: str, email: str, role: UserRole) -> User:
    normalized_email = email.strip().lower()
    existing = session.execute(select(User).where(func.lower(User.email) == normalized_email)).scalar_one_or_none()
    hashed_password = get_password_hash(DEFAULT_PASSWORD)
    if existing is None:
        existing = User(name=name, email=normalized_email, hashed_password=hashed_password, role=role, is_active=True)
        session.add(existing)
    else:
        existing.name = name
        existing.role = role
        existing.is_active = True
        if RESET_PASSWORDS:
            existing.hashed_password = hashed_password
    session.flush()
    return existing


def upsert_year_and_term(session) -> AcademicTerm:
    start_year = int(ACADEMIC_YEAR.split("-")[0])
    year = session.execute(select(AcademicYear).where(AcademicYear.name == ACADEMIC_YEAR)).scalar_one_or_none()
    if year is None:
        year = AcademicYear(
            name=ACADEMIC_YEAR,
            start_date=date(start_year, 9, 1),
            end_date=date(start_year + 1, 5, 31),
        )
        session.add(year)
        session.flush()

    term = session.execute(
        select(AcademicTerm).where(AcademicTerm.academic_year_id == year.id, AcademicTerm.name == TERM_NAME)
    ).scalar_one_or_none()
    if term is None:
        term = AcademicTerm(
            academic_year_id=year.id,
            name=TERM_NAME,
            start_date=date(start_year, 9, 1),
            end_date=date(start_year + 1, 1, 15),
        )
        session.add(term)
        session.flush()
    return term


def upsert_classes(session, term: AcademicTerm) -> tuple[dict[str, SchoolClass], dict[int, GradeLevel]]:
    classes: dict[str, SchoolClass] = {}
    grades: dict[int, GradeLevel] = {}
    room_number = 100
    for level, names in GRADES.items():
        grade = session.execute(select(GradeLevel).where(GradeLevel.level == level)).scalar_one_or_none()
        if grade is None:
            grade = GradeLevel(level=level, name=f"Khối {level}")
            session.add(grade)
            session.flush()
        grades[level] = grade

        combined_name = COMBINED_CLASSES.get(level)
        for name in names + ([combined_name] if combined_name else []):
            room_number += 1
            school_class = session.execute(
                select(SchoolClass).where(
                    SchoolClass.academic_year_id == term.academic_year_id,
                    SchoolClass.name == name,
                )
            ).scalar_one_or_none()
            if school_class is None:
                school_class = SchoolClass(
                    academic_year_id=term.academic_year_id,
                    grade_level_id=grade.id,
                    name=name,
                    is_combined=name == combined_name,
                    room_number=f"P{room_number}",
                )
                session.add(school_class)
                session.flush()
            classes[name] = school_class
    return classes, grades


def upsert_subjects(session) -> dict[str, Subject]:
    subjects: dict[str, Subject] = {}
    for code, name, _periods, _kind in SUBJECTS:
        subject = session.execute(select(Subject).where(Subject.code == code)).scalar_one_or_none()
        if subject is None:
            subject = Subject(code=code, name=name)
            session.add(subject)
        else:
            subject.name = name
        session.flush()
        subjects[code] = subject
    return subjects


def upsert_time_slots(session) -> None:
    for order_index, start, end, is_break in TIME_SLOTS:
        slot = session.execute(select(TimeSlot).where(TimeSlot.order_index == order_index)).scalar_one_or_none()
        if slot is None:
            slot = TimeSlot(order_index=order_index, name=f"Tiết {order_index}")
            session.add(slot)
        slot.start_time = start
        slot.end_time = end
        slot.is_break = is_break
    session.flush()


def upsert_curriculum(session, term: AcademicTerm, subjects: dict[str, Subject]) -> None:
    # School-wide templates; classes receive their rows on the first generation run.
    for code, _name, periods, kind in SUBJECTS:
        row = session.execute(
            select(CurriculumAssignment).where(
                CurriculumAssignment.academic_term_id == term.id,
                CurriculumAssignment.subject_id == subjects[code].id,
                CurriculumAssignment.class_id.is_(None),
                CurriculumAssignment.grade_level_id.is_(None),
            )
        ).scalar_one_or_none()
        if row is None:
            row = CurriculumAssignment(academic_term_id=term.id, subject_id=subjects[code].id)
            session.add(row)
        row.weekly_periods = periods
        row.type = kind
    session.flush()


def upsert_teachers_and_assignments(
    session,
    term: AcademicTerm,
    classes: dict[str, SchoolClass],
    subjects: dict[str, Subject],
) -> None:
    teachers_by_subject: dict[str, list[Teacher]] = {}
    for full_name, codes in TEACHERS:
        email = teacher_email(full_name)
        user = upsert_user(session, name=full_name, email=email, role=UserRole.teacher)
        teacher = session.execute(select(Teacher).where(Teacher.email == email)).scalar_one_or_none()
        if teacher is None:
            teacher = Teacher(full_name=full_name, email=email)
            session.add(teacher)
        teacher.user_id = user.id
        session.flush()
        for code in codes:
            teachers_by_subject.setdefault(code, []).append(teacher)

    elective_codes = {code for code, _name, _periods, kind in SUBJECTS if kind == CurriculumType.elective}
    for index, school_class in enumerate(sorted(classes.values(), key=lambda item: item.name)):
        for code, subject in subjects.items():
            if (code in elective_codes) != school_class.is_combined:
                continue
            candidates = teachers_by_subject.get(code)
            if not candidates:
                continue
            teacher = candidates[index % len(candidates)]
            existing = session.execute(
                select(TeacherAssignment).where(
                    TeacherAssignment.academic_term_id == term.id,
                    TeacherAssignment.class_id == school_class.id,
                    TeacherAssignment.subject_id == subject.id,
                    TeacherAssignment.is_active.is_(True),
                )
            ).scalar_one_or_none()
            if existing is None:
                session.add(
                    TeacherAssignment(
                        academic_term_id=term.id,
                        teacher_id=teacher.id,
                        class_id=school_class.id,
                        subject_id=subject.id,
                        is_active=True,
                    )
                )
    session.flush()


def main() -> None:
    ensure_runtime_schema_compatibility()
    with SessionLocal() as session:
        upsert_user(session, **ADMIN_PROFILE)
        upsert_user(session, **SCHEDULER_PROFILE)
        term = upsert_year_and_term(session)
        classes, _grades = upsert_classes(session, term)
        subjects = upsert_subjects(session)
        upsert_time_slots(session)
        upsert_curriculum(session, term, subjects)
        upsert_teachers_and_assignments(session, term, classes, subjects)

        session.commit()

        term_id = term.id
        class_count = session.execute(select(func.count(SchoolClass.id))).scalar_one()
        teacher_count = session.execute(select(func.count(Teacher.id))).scalar_one()
        assignment_count = session.execute(
            select(func.count(TeacherAssignment.id)).where(TeacherAssignment.academic_term_id == term_id)
        ).scalar_one()

    print("School data seeded successfully.")
    print("")
    print(f"Academic term: {ACADEMIC_YEAR} / {TERM_NAME} ({term_id})")
    print(f"Classes: {class_count}")
    print(f"Teachers: {teacher_count}")
    print(f"Teacher assignments: {assignment_count}")
    print("")
    print("Login credentials for seeded users (all use same password):")
    print(f"  Password:  {DEFAULT_PASSWORD}")
    print(f"  Admin:     {ADMIN_PROFILE['email']}")
    print(f"  Scheduler: {SCHEDULER_PROFILE['email']}")


if __name__ == "__main__":
    main()
