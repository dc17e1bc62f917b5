"""Print coverage and per-day load for a generated term schedule.

Run:
  PYTHONPATH=backend python scripts/audit_schedule.py [academic_term_id] [day]
"""

from __future__ import annotations

from collections import Counter
import sys

from sqlalchemy import select

from app.db.session import SessionLocal
from app.models.academic import AcademicTerm
from app.models.school_class import SchoolClass
from app.models.teaching_schedule import TeachingSchedule, parse_day_lenient
from app.services.schedule_persistence import term_coverage


def main() -> None:
    db = SessionLocal()
    try:
        if len(sys.argv) > 1:
            term = db.get(AcademicTerm, sys.argv[1])
        else:
            term = db.execute(select(AcademicTerm).order_by(AcademicTerm.start_date.desc())).scalars().first()
        if term is None:
            print("No academic term found")
            return
        day = parse_day_lenient(sys.argv[2] if len(sys.argv) > 2 else None)

        print(f"Academic term: {term.name} ({term.id})")
        coverage = term_coverage(db, term.id)
        under_filled = [item for item in coverage if item.shortfall > 0]
        print(f"Subjects tracked: {len(coverage)}")
        print(f"Under-filled: {len(under_filled)}")
        for item in under_filled:
            print(
                f"  - {item.class_name} {item.subject_code}: "
                f"{item.scheduled}/{item.required} ({item.reason})"
            )

        class_names = dict(db.execute(select(SchoolClass.id, SchoolClass.name)).all())
        load = Counter(
            db.execute(
                select(TeachingSchedule.class_id).where(
                    TeachingSchedule.academic_term_id == term.id,
                    TeachingSchedule.day_of_week == day,
                    TeachingSchedule.is_active.is_(True),
                )
            ).scalars()
        )
        print(f"Lessons on {day.value}:")
        for class_id, count in sorted(load.items(), key=lambda item: class_names.get(item[0], item[0])):
            print(f"  - {class_names.get(class_id, class_id)}: {count}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
