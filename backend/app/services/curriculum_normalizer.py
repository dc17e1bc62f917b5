from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.academic import AcademicTerm
from app.models.curriculum import CurriculumAssignment
from app.models.school_class import SchoolClass
from app.models.subject import Subject

logger = logging.getLogger(__name__)


def _class_specific_rows(db: Session, academic_term_id: str) -> list[CurriculumAssignment]:
    # Ordered by class name and subject code so derived and reloaded rows come back identically.
    return list(
        db.execute(
            select(CurriculumAssignment)
            .join(SchoolClass, SchoolClass.id == CurriculumAssignment.class_id)
            .join(Subject, Subject.id == CurriculumAssignment.subject_id)
            .where(
                CurriculumAssignment.academic_term_id == academic_term_id,
                CurriculumAssignment.class_id.is_not(None),
            )
            .order_by(SchoolClass.name, SchoolClass.id, Subject.code, CurriculumAssignment.id)
        ).scalars()
    )


def _templates_for_class(
    templates: list[CurriculumAssignment],
    school_class: SchoolClass,
) -> list[CurriculumAssignment]:
    # A grade-level template overrides a school-wide one for the same subject.
    by_subject: dict[str, CurriculumAssignment] = {}
    for template in templates:
        if template.grade_level_id is None:
            by_subject.setdefault(template.subject_id, template)
    for template in templates:
        if template.grade_level_id == school_class.grade_level_id:
            by_subject[template.subject_id] = template
    return list(by_subject.values())


def normalize_curriculum(db: Session, academic_term_id: str) -> list[CurriculumAssignment]:
    """Return class-specific curriculum rows for a term, deriving them from templates when absent.

    Existing class-specific rows are returned untouched. Otherwise every class
    of the term's academic year receives one row per applicable school-wide or
    grade-level template. Derived rows are flushed into the current
    transaction, so a later call observes them and derives nothing.
    """
    existing = _class_specific_rows(db, academic_term_id)
    if existing:
        return existing

    term = db.get(AcademicTerm, academic_term_id)
    if term is None:
        logger.warning("Curriculum normalization skipped: academic term %s not found", academic_term_id)
        return []

    classes = list(
        db.execute(
            select(SchoolClass)
            .where(SchoolClass.academic_year_id == term.academic_year_id)
            .order_by(SchoolClass.name, SchoolClass.id)
        ).scalars()
    )
    if not classes:
        logger.warning(
            "Curriculum normalization skipped: no classes for academic year %s (term %s)",
            term.academic_year_id,
            academic_term_id,
        )
        return []

    templates = list(
        db.execute(
            select(CurriculumAssignment)
            .where(
                CurriculumAssignment.academic_term_id == academic_term_id,
                CurriculumAssignment.class_id.is_(None),
            )
            .order_by(CurriculumAssignment.created_at, CurriculumAssignment.id)
        ).scalars()
    )

    derived: list[CurriculumAssignment] = []
    for school_class in classes:
        applicable = _templates_for_class(templates, school_class)
        logger.info(
            "Deriving curriculum for class %s (%s): %s subjects",
            school_class.name,
            school_class.id,
            len(applicable),
        )
        for template in applicable:
            derived.append(
                CurriculumAssignment(
                    academic_term_id=academic_term_id,
                    subject_id=template.subject_id,
                    class_id=school_class.id,
                    grade_level_id=None,
                    type=template.type,
                    weekly_periods=template.weekly_periods,
                )
            )

    if not derived:
        return []
    db.add_all(derived)
    db.flush()
    logger.info(
        "Curriculum normalization | term=%s templates=%s derived=%s",
        academic_term_id,
        len(templates),
        len(derived),
    )
    return _class_specific_rows(db, academic_term_id)
