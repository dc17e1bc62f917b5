"""create curriculum, assignments, constraints and teaching schedules

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def upgrade() -> None:
    curriculum_type = sa.Enum("mandatory", "elective", name="curriculum_type")
    constraint_type = sa.Enum("teacher_unavailable", "class_unavailable", name="schedule_constraint_type")
    # Shared by two tables; created once up front.
    sa.Enum(*DAYS, name="day_of_week").create(op.get_bind(), checkfirst=True)
    day_column = postgresql.ENUM(*DAYS, name="day_of_week", create_type=False)

    op.create_table(
        "curriculum_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "academic_term_id",
            sa.String(length=36),
            sa.ForeignKey("academic_terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=True),
        sa.Column("grade_level_id", sa.String(length=36), sa.ForeignKey("grade_levels.id"), nullable=True),
        sa.Column("type", curriculum_type, nullable=False, server_default="mandatory"),
        sa.Column("weekly_periods", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_curriculum_assignments_academic_term_id", "curriculum_assignments", ["academic_term_id"]
    )
    op.create_index("ix_curriculum_assignments_class_id", "curriculum_assignments", ["class_id"])

    op.create_table(
        "teacher_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "academic_term_id",
            sa.String(length=36),
            sa.ForeignKey("academic_terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id"), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_teacher_assignments_academic_term_id", "teacher_assignments", ["academic_term_id"])
    op.create_index("ix_teacher_assignments_teacher_id", "teacher_assignments", ["teacher_id"])

    op.create_table(
        "schedule_constraints",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "academic_term_id",
            sa.String(length=36),
            sa.ForeignKey("academic_terms.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("constraint_type", constraint_type, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id"), nullable=True),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=True),
        sa.Column("day_of_week", day_column, nullable=False),
        sa.Column("time_slot_id", sa.String(length=36), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_schedule_constraints_academic_term_id", "schedule_constraints", ["academic_term_id"])

    op.create_table(
        "teaching_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "academic_term_id",
            sa.String(length=36),
            sa.ForeignKey("academic_terms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("time_slot_id", sa.String(length=36), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("day_of_week", day_column, nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("room", sa.String(length=50), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_teaching_schedules_academic_term_id", "teaching_schedules", ["academic_term_id"])
    op.create_index(
        "ix_teaching_schedules_term_day_slot",
        "teaching_schedules",
        ["academic_term_id", "week_number", "day_of_week", "time_slot_id"],
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("academic_term_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_academic_term_id", "activity_logs", ["academic_term_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_academic_term_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_teaching_schedules_term_day_slot", table_name="teaching_schedules")
    op.drop_index("ix_teaching_schedules_academic_term_id", table_name="teaching_schedules")
    op.drop_table("teaching_schedules")
    op.drop_index("ix_schedule_constraints_academic_term_id", table_name="schedule_constraints")
    op.drop_table("schedule_constraints")
    op.drop_index("ix_teacher_assignments_teacher_id", table_name="teacher_assignments")
    op.drop_index("ix_teacher_assignments_academic_term_id", table_name="teacher_assignments")
    op.drop_table("teacher_assignments")
    op.drop_index("ix_curriculum_assignments_class_id", table_name="curriculum_assignments")
    op.drop_index("ix_curriculum_assignments_academic_term_id", table_name="curriculum_assignments")
    op.drop_table("curriculum_assignments")
    sa.Enum(name="day_of_week").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="schedule_constraint_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="curriculum_type").drop(op.get_bind(), checkfirst=True)
