import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class SchoolClass(Base):
    """A base class (lớp tách) or, with ``is_combined``, a combined elective group (lớp ghép)."""

    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("academic_year_id", "name", name="uq_classes_year_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    academic_year_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True
    )
    grade_level_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grade_levels.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_combined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    room_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
