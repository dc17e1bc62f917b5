from __future__ import annotations

import logging

from sqlalchemy import inspect, text

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "is_active"},
    "academic_terms": {"id", "academic_year_id", "name"},
    "classes": {"id", "academic_year_id", "grade_level_id", "is_combined", "room_number"},
    "curriculum_assignments": {"id", "academic_term_id", "class_id", "grade_level_id", "type", "weekly_periods"},
    "teacher_assignments": {"id", "academic_term_id", "teacher_id", "class_id", "subject_id", "is_active"},
    "time_slots": {"id", "order_index", "is_break"},
    "schedule_constraints": {"id", "constraint_type", "day_of_week", "time_slot_id", "is_active"},
    "teaching_schedules": {
        "id",
        "academic_term_id",
        "class_id",
        "teacher_id",
        "subject_id",
        "time_slot_id",
        "day_of_week",
        "week_number",
        "is_active",
    },
    "activity_logs": {"id", "action", "academic_term_id"},
}


def _ensure_activity_logs_term_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "activity_logs" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("activity_logs")}
        if "academic_term_id" in column_names:
            return
        connection.execute(text("ALTER TABLE activity_logs ADD COLUMN academic_term_id VARCHAR(36)"))


def _ensure_teaching_schedules_is_active_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "teaching_schedules" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("teaching_schedules")}
        if "is_active" in column_names:
            return
        default = "TRUE" if connection.dialect.name == "postgresql" else "1"
        connection.execute(
            text(f"ALTER TABLE teaching_schedules ADD COLUMN is_active BOOLEAN NOT NULL DEFAULT {default}")
        )


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=engine)
        _ensure_activity_logs_term_column()
        _ensure_teaching_schedules_is_active_column()
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
