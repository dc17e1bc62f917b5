from sqlalchemy import select

from app.models.teaching_schedule import DayOfWeek, TeachingSchedule
from app.schemas.schedule import TeachingScheduleBase
from app.services.conflict_service import CLASS_CONFLICT, TEACHER_CONFLICT, check_schedule_conflicts


def _seed_entry(school, db_session):
    slots = school.time_slots(4)
    class_a = school.school_class("10A")
    class_b = school.school_class("10B")
    math = school.subject("MATH")
    teacher_a = school.teacher("Nguyen An")
    teacher_b = school.teacher("Tran Binh")
    db_session.add(
        TeachingSchedule(
            academic_term_id=school.term.id,
            class_id=class_a.id,
            teacher_id=teacher_a.id,
            subject_id=math.id,
            time_slot_id=slots[1].id,
            day_of_week=DayOfWeek.tuesday,
            week_number=1,
        )
    )
    school.commit()
    return slots, class_a, class_b, math, teacher_a, teacher_b


def _candidate(school, **fields):
    return TeachingScheduleBase(academic_term_id=school.term.id, **fields)


def test_teacher_and_class_conflicts_are_reported_independently(school, db_session):
    slots, class_a, class_b, math, teacher_a, teacher_b = _seed_entry(school, db_session)
    base = {"subject_id": math.id, "time_slot_id": slots[1].id, "day_of_week": 2}

    same_teacher = _candidate(school, class_id=class_b.id, teacher_id=teacher_a.id, **base)
    same_class = _candidate(school, class_id=class_a.id, teacher_id=teacher_b.id, **base)
    both = _candidate(school, class_id=class_a.id, teacher_id=teacher_a.id, **base)

    assert check_schedule_conflicts(db_session, same_teacher) == [TEACHER_CONFLICT]
    assert check_schedule_conflicts(db_session, same_class) == [CLASS_CONFLICT]
    assert check_schedule_conflicts(db_session, both) == [TEACHER_CONFLICT, CLASS_CONFLICT]


def test_day_names_are_accepted(school, db_session):
    slots, class_a, class_b, math, teacher_a, teacher_b = _seed_entry(school, db_session)

    candidate = _candidate(
        school,
        class_id=class_b.id,
        teacher_id=teacher_a.id,
        subject_id=math.id,
        time_slot_id=slots[1].id,
        day_of_week="Tuesday",
    )

    assert check_schedule_conflicts(db_session, candidate) == [TEACHER_CONFLICT]


def test_other_week_slot_or_inactive_entries_do_not_conflict(school, db_session):
    slots, class_a, class_b, math, teacher_a, teacher_b = _seed_entry(school, db_session)
    fields = {"class_id": class_a.id, "teacher_id": teacher_a.id, "subject_id": math.id}

    assert check_schedule_conflicts(
        db_session, _candidate(school, time_slot_id=slots[1].id, day_of_week=2, week_number=2, **fields)
    ) == []
    assert check_schedule_conflicts(
        db_session, _candidate(school, time_slot_id=slots[2].id, day_of_week=2, **fields)
    ) == []
    assert check_schedule_conflicts(
        db_session, _candidate(school, time_slot_id=slots[1].id, day_of_week=3, **fields)
    ) == []

    entry = db_session.execute(select(TeachingSchedule)).scalar_one()
    entry.is_active = False
    db_session.commit()
    assert check_schedule_conflicts(
        db_session, _candidate(school, time_slot_id=slots[1].id, day_of_week=2, **fields)
    ) == []
