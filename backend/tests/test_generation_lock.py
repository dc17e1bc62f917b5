import pytest

from app.core.exceptions import GenerationInProgressError
from app.services.generation_lock import (
    TermGenerationLocks,
    clear_generation_locks,
    generation_running,
    term_generation_lock,
)


def test_lock_registry_is_per_term():
    locks = TermGenerationLocks()

    assert locks.acquire("term-1")
    assert not locks.acquire("term-1")
    assert locks.acquire("term-2")
    locks.release("term-1")
    assert locks.acquire("term-1")


def test_context_manager_rejects_reentry_and_releases_on_error():
    clear_generation_locks()

    with pytest.raises(RuntimeError):
        with term_generation_lock("term-1"):
            assert generation_running("term-1")
            with pytest.raises(GenerationInProgressError) as exc_info:
                with term_generation_lock("term-1"):
                    pass
            assert exc_info.value.status_code == 409
            raise RuntimeError("boom")

    assert not generation_running("term-1")
