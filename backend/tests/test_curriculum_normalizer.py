from sqlalchemy import func, select

from app.models.curriculum import CurriculumAssignment, CurriculumType
from app.services.curriculum_normalizer import normalize_curriculum


def _periods_by_class(rows):
    return {(row.class_id, row.subject_id): (row.weekly_periods, row.type) for row in rows}


def test_templates_expand_per_class_with_grade_override(school, db_session):
    class_10a = school.school_class("10A", level=10)
    class_11a = school.school_class("11A", level=11)
    math = school.subject("MATH")
    lit = school.subject("LIT")
    art = school.subject("ART")
    school.curriculum(math, 4)
    school.curriculum(math, 5, level=10)
    school.curriculum(lit, 3, level=10)
    school.curriculum(art, 1, elective=True)

    rows = normalize_curriculum(db_session, school.term.id)

    assert _periods_by_class(rows) == {
        (class_10a.id, math.id): (5, CurriculumType.mandatory),
        (class_10a.id, lit.id): (3, CurriculumType.mandatory),
        (class_10a.id, art.id): (1, CurriculumType.elective),
        (class_11a.id, math.id): (4, CurriculumType.mandatory),
        (class_11a.id, art.id): (1, CurriculumType.elective),
    }
    assert all(row.grade_level_id is None for row in rows)


def test_second_normalization_is_a_no_op(school, db_session):
    school.school_class("10A")
    school.school_class("10B")
    math = school.subject("MATH")
    school.curriculum(math, 4)

    first = normalize_curriculum(db_session, school.term.id)
    second = normalize_curriculum(db_session, school.term.id)

    assert [row.id for row in first] == [row.id for row in second]
    total = db_session.execute(
        select(func.count(CurriculumAssignment.id)).where(CurriculumAssignment.class_id.is_not(None))
    ).scalar_one()
    assert total == 2


def test_existing_class_rows_are_returned_untouched(school, db_session):
    class_10a = school.school_class("10A")
    school.school_class("10B")
    math = school.subject("MATH")
    school.curriculum(math, 4)
    school.curriculum(math, 2, school_class=class_10a)

    rows = normalize_curriculum(db_session, school.term.id)

    assert [(row.class_id, row.weekly_periods) for row in rows] == [(class_10a.id, 2)]


def test_nothing_to_derive_returns_empty(school, db_session):
    math = school.subject("MATH")
    school.curriculum(math, 4)

    # No classes in the academic year.
    assert normalize_curriculum(db_session, school.term.id) == []
    assert normalize_curriculum(db_session, "missing-term") == []
