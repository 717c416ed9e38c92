"""
Concurrent code allocation.

Every thread allocates through ``allocate_codes`` with its own session and
a real commit.  The union of all returned ranges must be exactly
1..total with no number issued twice, and each call's range must be
contiguous.

Run with: pytest tests/concurrency/test_allocator_concurrency.py -v
Skip with: pytest -m "not slow_locks"
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from wbs_kernel.exceptions import AllocationFailedError, InvalidPrefixError
from wbs_kernel.services.code_allocator import CodeAllocator, allocate_codes
from wbs_kernel.services.wbs_service import WbsService

pytestmark = pytest.mark.slow_locks


def _number(code: str) -> int:
    return int(code.split("-", 1)[1])


@pytest.fixture
def committed_project(committed_session_factory):
    """A project committed to the database, visible to every thread."""
    session = committed_session_factory()
    info = WbsService(session).create_project("Concurrent", uuid4())
    session.commit()
    session.close()
    return info


class TestConcurrentAllocation:

    @pytest.mark.parametrize("threads", [4, 8])
    def test_no_overlap_and_contiguous_ranges(
        self, committed_session_factory, committed_project, threads
    ):
        counts = [3, 1, 5, 2, 4, 1, 2, 6][:threads]
        barrier = threading.Barrier(threads)

        def worker(count: int) -> list[str]:
            barrier.wait()
            return allocate_codes(
                committed_session_factory, committed_project.id, "ISS", count
            )

        with ThreadPoolExecutor(max_workers=threads) as pool:
            results = list(pool.map(worker, counts))

        numbers = [_number(code) for codes in results for code in codes]
        assert sorted(numbers) == list(range(1, sum(counts) + 1))

        for codes, count in zip(results, counts):
            block = [_number(code) for code in codes]
            assert len(block) == count
            assert block == list(range(block[0], block[0] + count))

    def test_counter_reflects_all_commits(
        self, committed_session_factory, committed_project
    ):
        threads = 6
        barrier = threading.Barrier(threads)

        def worker(_):
            barrier.wait()
            return allocate_codes(
                committed_session_factory, committed_project.id, "REQ", 2
            )

        with ThreadPoolExecutor(max_workers=threads) as pool:
            list(pool.map(worker, range(threads)))

        session = committed_session_factory()
        assert CodeAllocator(session).current_value(committed_project.id, "REQ") == 12

    def test_prefixes_do_not_interfere(
        self, committed_session_factory, committed_project
    ):
        prefixes = ["ISS", "REQ", "DIS"] * 3
        barrier = threading.Barrier(len(prefixes))

        def worker(prefix: str) -> list[str]:
            barrier.wait()
            return allocate_codes(
                committed_session_factory, committed_project.id, prefix, 2
            )

        with ThreadPoolExecutor(max_workers=len(prefixes)) as pool:
            results = list(pool.map(worker, prefixes))

        for prefix in ("ISS", "REQ", "DIS"):
            numbers = sorted(
                _number(code)
                for codes in results
                for code in codes
                if code.startswith(f"{prefix}-")
            )
            assert numbers == list(range(1, 7))


class TestAllocateCodesRetry:

    def test_transient_failure_retried(
        self, committed_session_factory, committed_project, monkeypatch, captured_logs
    ):
        original = CodeAllocator._lock_counter
        calls = {"n": 0}

        def flaky(self, project_id, prefix):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("SELECT", {}, Exception("connection reset"))
            return original(self, project_id, prefix)

        monkeypatch.setattr(CodeAllocator, "_lock_counter", flaky)

        codes = allocate_codes(committed_session_factory, committed_project.id, "ISS", 2)

        assert codes == ["ISS-001", "ISS-002"]
        assert any(r["message"] == "code_allocation_retry" for r in captured_logs())

    def test_exhausted_retries_raise(
        self, committed_session_factory, committed_project, monkeypatch
    ):
        def down(self, project_id, prefix):
            raise OperationalError("SELECT", {}, Exception("database is down"))

        monkeypatch.setattr(CodeAllocator, "_lock_counter", down)

        with pytest.raises(AllocationFailedError):
            allocate_codes(
                committed_session_factory,
                committed_project.id,
                "ISS",
                1,
                max_attempts=2,
            )

    def test_waiting_is_left_to_the_caller(
        self, committed_session_factory, committed_project, monkeypatch
    ):
        def down(self, project_id, prefix):
            raise OperationalError("SELECT", {}, Exception("database is down"))

        def no_sleep(seconds):
            raise AssertionError("allocate_codes slept")

        monkeypatch.setattr(CodeAllocator, "_lock_counter", down)
        monkeypatch.setattr(time, "sleep", no_sleep)
        waits = []

        with pytest.raises(AllocationFailedError):
            allocate_codes(
                committed_session_factory,
                committed_project.id,
                "ISS",
                1,
                max_attempts=3,
                backoff=waits.append,
            )
        assert waits == [1, 2]

    def test_terminal_errors_not_retried(
        self, committed_session_factory, committed_project
    ):
        opened = []

        def counting_factory():
            session = committed_session_factory()
            opened.append(session)
            return session

        with pytest.raises(InvalidPrefixError):
            allocate_codes(counting_factory, committed_project.id, "XYZ", 1)
        assert len(opened) == 1
