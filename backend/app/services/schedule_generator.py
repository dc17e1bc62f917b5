from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
import logging
from time import perf_counter

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import ExistingScheduleError, MissingPrerequisiteError, SchedulerError
from app.models.curriculum import CurriculumType
from app.models.teaching_schedule import DayOfWeek, TeachingSchedule
from app.schemas.schedule import GenerationSettings
from app.services.conflict_matrix import (
    ConflictMatrix,
    ElectiveReservation,
    RealTeacher,
    SpecialActivity,
    SpecialActivityKind,
)
from app.services.generation_lock import term_generation_lock
from app.services.schedule_catalog import CurriculumRecord, GenerationCatalog, load_generation_catalog
from app.services.schedule_persistence import count_term_schedules, replace_term_schedules
from app.services.slot_selector import ConstraintIndex, SlotSelector, SubjectPreferenceTable

logger = logging.getLogger(__name__)

FLAG_CEREMONY_DAY = 1
CLASS_ACTIVITIES_DAY = 6

# (day, slot order indexes) kept free in every base class for combined-class electives.
ELECTIVE_RESERVATIONS: tuple[tuple[int, tuple[int, ...]], ...] = (
    (2, (3, 4)),
    (3, (5, 6)),
    (4, (7, 8)),
    (5, (2, 3)),
    (6, (4, 5)),
)

BASE_CLASS_NOTE = "Lớp tách"
COMBINED_CLASS_NOTE = "Lớp ghép"


class GenerationState(str, Enum):
    start = "start"
    validate = "validate"
    reserve_special_activities = "reserve_special_activities"
    schedule_base_classes = "schedule_base_classes"
    schedule_combined_classes = "schedule_combined_classes"
    persist = "persist"
    done = "done"
    failed = "failed"


_TRANSITIONS: dict[GenerationState, set[GenerationState]] = {
    GenerationState.start: {GenerationState.validate},
    GenerationState.validate: {GenerationState.reserve_special_activities, GenerationState.failed},
    GenerationState.reserve_special_activities: {GenerationState.schedule_base_classes},
    GenerationState.schedule_base_classes: {GenerationState.schedule_combined_classes},
    GenerationState.schedule_combined_classes: {GenerationState.persist, GenerationState.failed},
    GenerationState.persist: {GenerationState.done, GenerationState.failed},
    GenerationState.done: set(),
    GenerationState.failed: set(),
}

_PREREQUISITE_MESSAGES = {
    "curriculum": (
        "Không tìm thấy phân phối chương trình. Vui lòng thiết lập phân phối chương trình "
        "trước khi tạo thời khóa biểu tự động.",
        "Set up the curriculum distribution for this term before generating.",
    ),
    "teacher_assignments": (
        "Không tìm thấy phân công giáo viên. Vui lòng phân công giáo viên "
        "trước khi tạo thời khóa biểu tự động.",
        "Assign teachers to classes and subjects before generating.",
    ),
    "time_slots": (
        "Không tìm thấy thời gian học. Vui lòng thiết lập thời gian học trước.",
        "Create the daily time slots before generating.",
    ),
    "schedule": (
        "Không thể tạo thời khóa biểu. Vui lòng kiểm tra lại phân công giáo viên "
        "và phân phối chương trình.",
        "No lesson could be placed; check teacher assignments and curriculum.",
    ),
}


def missing_prerequisite(prerequisite: str) -> MissingPrerequisiteError:
    message, hint = _PREREQUISITE_MESSAGES[prerequisite]
    return MissingPrerequisiteError(prerequisite, message, hint)


@dataclass(frozen=True)
class PlannedLesson:
    class_id: str
    teacher_id: str
    subject_id: str
    time_slot_id: str
    day: int
    room: str | None
    notes: str

    def to_model(self, academic_term_id: str) -> TeachingSchedule:
        return TeachingSchedule(
            academic_term_id=academic_term_id,
            class_id=self.class_id,
            teacher_id=self.teacher_id,
            subject_id=self.subject_id,
            time_slot_id=self.time_slot_id,
            day_of_week=DayOfWeek.from_number(self.day),
            week_number=1,
            room=self.room,
            notes=self.notes,
            is_active=True,
        )


@dataclass
class CoverageRecord:
    class_id: str
    subject_id: str
    teacher_id: str | None
    required: int
    scheduled: int = 0
    reason: str | None = None

    @property
    def shortfall(self) -> int:
        return max(0, self.required - self.scheduled)


@dataclass
class PhaseResult:
    matrix: ConflictMatrix
    lessons: list[PlannedLesson] = field(default_factory=list)
    coverage: list[CoverageRecord] = field(default_factory=list)


@dataclass
class GenerationResult:
    academic_term_id: str
    lessons: list[PlannedLesson]
    coverage: list[CoverageRecord]
    state_trace: list[str]
    catalog: GenerationCatalog | None = None
    entries: list[TeachingSchedule] = field(default_factory=list)
    runtime_ms: int = 0

    @property
    def shortfalls(self) -> list[CoverageRecord]:
        return [item for item in self.coverage if item.shortfall > 0]

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)

    @property
    def classes_scheduled(self) -> int:
        return len({lesson.class_id for lesson in self.lessons})

    @property
    def teachers_assigned(self) -> int:
        return len({lesson.teacher_id for lesson in self.lessons})


class GenerationRun:
    """One greedy, single-pass generation over a loaded catalog.

    Owns its ConflictMatrix. Base classes are planned first and hand their
    matrix (with elective reservations) to the combined-class phase.
    """

    def __init__(
        self,
        catalog: GenerationCatalog,
        *,
        options: GenerationSettings | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.catalog = catalog
        self.options = options or GenerationSettings()
        self.app_settings = app_settings or get_settings()
        self.state = GenerationState.start
        self.state_trace: list[str] = [self.state.value]
        self.weekdays = tuple(range(1, self.app_settings.schedule_weekdays + 1))
        self.preferences = SubjectPreferenceTable.from_settings(self.app_settings)
        constraints = catalog.constraints if self.options.respect_constraints else ()
        self.selector = SlotSelector(
            time_slots=catalog.time_slots,
            weekdays=self.weekdays,
            constraints=ConstraintIndex.build(constraints),
            preferences=self.preferences,
            morning_last_order_index=self.app_settings.morning_last_order_index,
            max_periods_per_day=self.options.max_periods_per_day or self.app_settings.default_max_periods_per_day,
            balance_subjects=self.options.balance_subjects,
        )
        self.teacher_by_class_subject: dict[tuple[str, str], str] = {}
        for assignment in catalog.teacher_assignments:
            self.teacher_by_class_subject.setdefault((assignment.class_id, assignment.subject_id), assignment.teacher_id)
        self.curriculum_by_class: dict[str, list[CurriculumRecord]] = defaultdict(list)
        for row in catalog.curriculum:
            self.curriculum_by_class[row.class_id].append(row)
        self.subject_days: dict[tuple[str, str], set[int]] = defaultdict(set)

    def transition(self, state: GenerationState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise SchedulerError(
                f"Invalid generation state transition {self.state.value} -> {state.value}",
                details={"from": self.state.value, "to": state.value},
            )
        self.state = state
        self.state_trace.append(state.value)

    def fail(self) -> None:
        if GenerationState.failed in _TRANSITIONS[self.state]:
            self.transition(GenerationState.failed)

    def _is_combined(self, class_id: str) -> bool:
        record = self.catalog.classes.get(class_id)
        return bool(record and record.is_combined)

    def validate(self) -> None:
        self.transition(GenerationState.validate)
        if not self.catalog.curriculum:
            self.fail()
            raise missing_prerequisite("curriculum")
        if not self.catalog.teacher_assignments:
            self.fail()
            raise missing_prerequisite("teacher_assignments")
        if not self.catalog.time_slots:
            self.fail()
            raise missing_prerequisite("time_slots")

    def reserve_special_activities(self, matrix: ConflictMatrix) -> None:
        self.transition(GenerationState.reserve_special_activities)
        if not self.options.generate_special_activities:
            logger.info("Special-activity reservation disabled for term %s", self.catalog.academic_term_id)
            return
        first_slot = self.catalog.time_slots[0]
        last_slot = self.catalog.time_slots[-1]
        for class_id in self.curriculum_by_class:
            matrix.mark_occupied(
                class_id, SpecialActivity(SpecialActivityKind.flag_ceremony), FLAG_CEREMONY_DAY, first_slot.id
            )
            matrix.mark_occupied(
                class_id, SpecialActivity(SpecialActivityKind.class_activities), CLASS_ACTIVITIES_DAY, last_slot.id
            )

    def _core_first_order(self, rows: list[CurriculumRecord]) -> list[CurriculumRecord]:
        def sort_key(row: CurriculumRecord) -> tuple[int, int]:
            subject = self.catalog.subjects.get(row.subject_id)
            is_core = self.preferences.is_core(subject.code if subject else None)
            return (0 if is_core else 1, -row.weekly_periods)

        return sorted(rows, key=sort_key)

    def _schedule_subject(self, matrix: ConflictMatrix, row: CurriculumRecord, *, note: str, phase: PhaseResult) -> None:
        subject = self.catalog.subjects.get(row.subject_id)
        subject_code = subject.code if subject else None
        subject_name = subject.name if subject else row.subject_id
        teacher_id = self.teacher_by_class_subject.get((row.class_id, row.subject_id))
        coverage = CoverageRecord(
            class_id=row.class_id,
            subject_id=row.subject_id,
            teacher_id=teacher_id,
            required=row.weekly_periods,
        )
        phase.coverage.append(coverage)

        if teacher_id is None:
            coverage.reason = "teacher_missing"
            logger.warning(
                "No teacher assignment | term=%s class=%s subject=%s; subject skipped",
                self.catalog.academic_term_id,
                row.class_id,
                subject_code or row.subject_id,
            )
            return

        class_record = self.catalog.classes.get(row.class_id)
        room = class_record.room_number if class_record else None
        days = self.subject_days[(row.class_id, row.subject_id)]
        for _ in range(row.weekly_periods):
            choice = self.selector.find_slot(
                matrix,
                class_id=row.class_id,
                teacher_id=teacher_id,
                subject_code=subject_code,
                subject_days=frozenset(days),
            )
            if choice is None:
                continue
            matrix.mark_occupied(row.class_id, RealTeacher(teacher_id), choice.day, choice.time_slot_id)
            days.add(choice.day)
            phase.lessons.append(
                PlannedLesson(
                    class_id=row.class_id,
                    teacher_id=teacher_id,
                    subject_id=row.subject_id,
                    time_slot_id=choice.time_slot_id,
                    day=choice.day,
                    room=room,
                    notes=f"{subject_name} - {note}",
                )
            )
            coverage.scheduled += 1

        if coverage.shortfall > 0:
            coverage.reason = "no_slot"
            logger.warning(
                "Scheduled %s/%s periods | term=%s class=%s subject=%s",
                coverage.scheduled,
                coverage.required,
                self.catalog.academic_term_id,
                row.class_id,
                subject_code or row.subject_id,
            )
        else:
            logger.info(
                "Scheduled %s/%s periods | class=%s subject=%s",
                coverage.scheduled,
                coverage.required,
                row.class_id,
                subject_code or row.subject_id,
            )

    def _reserve_elective_slots(self, matrix: ConflictMatrix, class_id: str) -> None:
        slots_by_order = {slot.order_index: slot for slot in self.catalog.time_slots}
        for day, order_indexes in ELECTIVE_RESERVATIONS:
            for order_index in order_indexes:
                slot = slots_by_order.get(order_index)
                if slot is None or slot.is_break:
                    continue
                if matrix.is_class_free(class_id, day, slot.id):
                    matrix.mark_occupied(class_id, ElectiveReservation(), day, slot.id)

    def schedule_base_classes(self, matrix: ConflictMatrix) -> PhaseResult:
        self.transition(GenerationState.schedule_base_classes)
        phase = PhaseResult(matrix=matrix)
        for class_id, rows in self.curriculum_by_class.items():
            if self._is_combined(class_id):
                continue
            mandatory = [row for row in rows if row.type != CurriculumType.elective]
            for row in self._core_first_order(mandatory):
                self._schedule_subject(matrix, row, note=BASE_CLASS_NOTE, phase=phase)
            self._reserve_elective_slots(matrix, class_id)
        logger.info(
            "Base classes planned | term=%s lessons=%s",
            self.catalog.academic_term_id,
            len(phase.lessons),
        )
        return phase

    def schedule_combined_classes(self, base_phase: PhaseResult) -> PhaseResult:
        self.transition(GenerationState.schedule_combined_classes)
        matrix = base_phase.matrix
        phase = PhaseResult(matrix=matrix)
        for class_id, rows in self.curriculum_by_class.items():
            if not self._is_combined(class_id):
                continue
            for row in rows:
                self._schedule_subject(matrix, row, note=COMBINED_CLASS_NOTE, phase=phase)
        logger.info(
            "Combined classes planned | term=%s lessons=%s",
            self.catalog.academic_term_id,
            len(phase.lessons),
        )
        return phase

    def plan(self) -> GenerationResult:
        self.validate()
        matrix = ConflictMatrix()
        self.reserve_special_activities(matrix)
        base_phase = self.schedule_base_classes(matrix)
        combined_phase = self.schedule_combined_classes(base_phase)
        lessons = base_phase.lessons + combined_phase.lessons
        if not lessons:
            self.fail()
            raise missing_prerequisite("schedule")
        return GenerationResult(
            academic_term_id=self.catalog.academic_term_id,
            lessons=lessons,
            coverage=base_phase.coverage + combined_phase.coverage,
            state_trace=self.state_trace,
            catalog=self.catalog,
        )


class TeachingScheduleGenerator:
    def __init__(
        self,
        *,
        db: Session,
        academic_term_id: str,
        options: GenerationSettings | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.academic_term_id = academic_term_id
        self.options = options or GenerationSettings()
        self.app_settings = app_settings or get_settings()

    def run(self) -> GenerationResult:
        started = perf_counter()
        logger.info(
            "TEACHING SCHEDULE GENERATION START | term=%s | settings=%s",
            self.academic_term_id,
            self.options.model_dump(),
        )
        with term_generation_lock(self.academic_term_id):
            if not self.options.clear_existing:
                existing = count_term_schedules(self.db, self.academic_term_id)
                if existing:
                    raise ExistingScheduleError(self.academic_term_id, existing)

            catalog = load_generation_catalog(self.db, self.academic_term_id)
            run = GenerationRun(catalog, options=self.options, app_settings=self.app_settings)
            result = run.plan()

            run.transition(GenerationState.persist)
            entries = [lesson.to_model(self.academic_term_id) for lesson in result.lessons]
            try:
                replace_term_schedules(self.db, self.academic_term_id, entries)
            except Exception:
                run.fail()
                raise
            run.transition(GenerationState.done)

        result.entries = entries
        result.runtime_ms = int((perf_counter() - started) * 1000)
        logger.info(
            "TEACHING SCHEDULE GENERATION COMPLETE | term=%s | lessons=%s | classes=%s | teachers=%s | shortfalls=%s | runtime_ms=%s",
            self.academic_term_id,
            result.total_lessons,
            result.classes_scheduled,
            result.teachers_assigned,
            len(result.shortfalls),
            result.runtime_ms,
        )
        return result
