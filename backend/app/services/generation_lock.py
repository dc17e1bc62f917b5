from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from app.core.exceptions import GenerationInProgressError


class TermGenerationLocks:
    """Process-local registry that lets one generation run own a term at a time."""

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._lock = Lock()

    def acquire(self, academic_term_id: str) -> bool:
        with self._lock:
            if academic_term_id in self._active:
                return False
            self._active.add(academic_term_id)
            return True

    def release(self, academic_term_id: str) -> None:
        with self._lock:
            self._active.discard(academic_term_id)

    def is_active(self, academic_term_id: str) -> bool:
        with self._lock:
            return academic_term_id in self._active

    def clear(self) -> None:
        with self._lock:
            self._active.clear()


_locks = TermGenerationLocks()


@contextmanager
def term_generation_lock(academic_term_id: str) -> Iterator[None]:
    if not _locks.acquire(academic_term_id):
        raise GenerationInProgressError(academic_term_id)
    try:
        yield
    finally:
        _locks.release(academic_term_id)


def generation_running(academic_term_id: str) -> bool:
    return _locks.is_active(academic_term_id)


def clear_generation_locks() -> None:
    _locks.clear()
