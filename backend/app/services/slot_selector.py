"""First-fit slot search for a single lesson.

Days are scanned outermost and preference-ordered slots innermost; the first
(day, slot) where the class and the teacher are both free and no
unavailability constraint matches wins. There is no randomness and no
backtracking: a placed lesson is never moved to make room for a later one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from app.core.config import Settings
from app.core.exceptions import ConfigurationError
from app.models.schedule_constraint import ConstraintType
from app.services.conflict_matrix import ConflictMatrix
from app.services.schedule_catalog import ConstraintRecord, TimeSlotRecord


class SubjectPreference(str, Enum):
    morning = "morning"
    afternoon = "afternoon"
    neutral = "neutral"


def normalize_subject_code(code: str | None) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True)
class SubjectPreferenceTable:
    core_codes: frozenset[str]
    practical_codes: frozenset[str]

    @classmethod
    def from_settings(cls, settings: Settings) -> "SubjectPreferenceTable":
        core = frozenset(normalize_subject_code(code) for code in settings.core_subject_codes)
        practical = frozenset(normalize_subject_code(code) for code in settings.practical_subject_codes)
        overlap = core & practical
        if overlap:
            raise ConfigurationError(
                f"Subject codes cannot be both core and practical: {', '.join(sorted(overlap))}"
            )
        return cls(core_codes=core, practical_codes=practical)

    def is_core(self, code: str | None) -> bool:
        return normalize_subject_code(code) in self.core_codes

    def classify(self, code: str | None) -> SubjectPreference:
        normalized = normalize_subject_code(code)
        if normalized in self.core_codes:
            return SubjectPreference.morning
        if normalized in self.practical_codes:
            return SubjectPreference.afternoon
        return SubjectPreference.neutral


@dataclass(frozen=True)
class SlotChoice:
    day: int
    time_slot_id: str


@dataclass
class ConstraintIndex:
    blocked_classes: set[tuple[str, int, str]] = field(default_factory=set)
    blocked_teachers: set[tuple[str, int, str]] = field(default_factory=set)

    @classmethod
    def build(cls, constraints: Iterable[ConstraintRecord]) -> "ConstraintIndex":
        index = cls()
        for item in constraints:
            if item.constraint_type == ConstraintType.teacher_unavailable and item.teacher_id:
                index.blocked_teachers.add((item.teacher_id, item.day, item.time_slot_id))
            elif item.constraint_type == ConstraintType.class_unavailable and item.class_id:
                index.blocked_classes.add((item.class_id, item.day, item.time_slot_id))
        return index

    def blocks(self, *, class_id: str, teacher_id: str, day: int, slot_id: str) -> bool:
        return (
            (class_id, day, slot_id) in self.blocked_classes
            or (teacher_id, day, slot_id) in self.blocked_teachers
        )


class SlotSelector:
    def __init__(
        self,
        *,
        time_slots: Sequence[TimeSlotRecord],
        weekdays: Sequence[int],
        constraints: ConstraintIndex,
        preferences: SubjectPreferenceTable,
        morning_last_order_index: int = 5,
        max_periods_per_day: int | None = None,
        balance_subjects: bool = False,
    ) -> None:
        lesson_slots = sorted((slot for slot in time_slots if not slot.is_break), key=lambda slot: slot.order_index)
        self.weekdays = tuple(weekdays)
        self.constraints = constraints
        self.preferences = preferences
        self.max_periods_per_day = max_periods_per_day
        self.balance_subjects = balance_subjects
        self.all_slots = tuple(lesson_slots)
        self.morning_slots = tuple(slot for slot in lesson_slots if slot.order_index <= morning_last_order_index)
        self.afternoon_slots = tuple(slot for slot in lesson_slots if slot.order_index > morning_last_order_index)

    def preferred_slots(self, subject_code: str | None) -> tuple[TimeSlotRecord, ...]:
        preference = self.preferences.classify(subject_code)
        if preference == SubjectPreference.morning:
            return self.morning_slots + self.afternoon_slots
        if preference == SubjectPreference.afternoon:
            return self.afternoon_slots + self.morning_slots
        return self.all_slots

    def is_available(self, matrix: ConflictMatrix, *, class_id: str, teacher_id: str, day: int, slot_id: str) -> bool:
        if not matrix.is_class_free(class_id, day, slot_id):
            return False
        if not matrix.is_teacher_free(teacher_id, day, slot_id):
            return False
        return not self.constraints.blocks(class_id=class_id, teacher_id=teacher_id, day=day, slot_id=slot_id)

    def _scan(
        self,
        matrix: ConflictMatrix,
        *,
        class_id: str,
        teacher_id: str,
        slots: Sequence[TimeSlotRecord],
        skip_days: frozenset[int],
    ) -> SlotChoice | None:
        for day in self.weekdays:
            if day in skip_days:
                continue
            if self.max_periods_per_day is not None and matrix.lessons_on_day(class_id, day) >= self.max_periods_per_day:
                continue
            for slot in slots:
                if self.is_available(matrix, class_id=class_id, teacher_id=teacher_id, day=day, slot_id=slot.id):
                    return SlotChoice(day=day, time_slot_id=slot.id)
        return None

    def find_slot(
        self,
        matrix: ConflictMatrix,
        *,
        class_id: str,
        teacher_id: str,
        subject_code: str | None,
        subject_days: frozenset[int] = frozenset(),
    ) -> SlotChoice | None:
        slots = self.preferred_slots(subject_code)
        if self.balance_subjects and subject_days:
            choice = self._scan(matrix, class_id=class_id, teacher_id=teacher_id, slots=slots, skip_days=subject_days)
            if choice is not None:
                return choice
        return self._scan(matrix, class_id=class_id, teacher_id=teacher_id, slots=slots, skip_days=frozenset())
