"""
CodeAllocator -- contiguous code ranges via locked counter rows.

Responsibility:
    Issues human-readable codes (``ISS-003``, ``REQ-012``, ``DIS-0007``)
    from an explicit per-(project, prefix) counter.  A single call reserves
    ``count`` consecutive numbers, so a bulk import of M rows makes one call
    with count = M.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by WbsEngine.allocate and by the ``allocate_codes`` helper that
    owns its own short transaction and retries.

Invariants enforced:
    CODE_CONTIGUITY -- the locked counter row is the sole source of truth
        for the next number.  Existing issue/requirement/discussion rows
        are NEVER scanned (no aggregate-max-plus-one).  Concurrent calls
        for the same key never overlap, and each call's range is
        contiguous.
    Transactional -- the increment becomes visible when the caller's
        transaction commits.  A range from a rolled-back transaction is
        simply never used; ranges are not reclaimed, so gaps are expected.

Failure modes:
    - InvalidPrefixError: prefix not registered.
    - OutOfRangeError: count < 1 or width < 1.
    - ProjectNotFoundError: first allocation for an unknown project.
    - AllocationFailedError: the database was unavailable (wrapped
      OperationalError / InterfaceError).  Retry the whole call.
    - IntegrityError on concurrent counter creation is handled internally
      via savepoint rollback and re-select.
"""

from collections.abc import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from wbs_kernel.domain.codes import PrefixRegistry, format_code
from wbs_kernel.exceptions import (
    AllocationFailedError,
    OutOfRangeError,
    ProjectNotFoundError,
)
from wbs_kernel.logging_config import get_logger
from wbs_kernel.models.code_counter import CodeCounter
from wbs_kernel.models.project import Project
from wbs_kernel.services.base import BaseService

logger = get_logger("services.code_allocator")

DEFAULT_MAX_ATTEMPTS = 3


class CodeAllocator(BaseService[CodeCounter]):
    """
    Service for allocating sequential codes.

    Contract:
        ``allocate(project_id, prefix, count)`` returns ``count`` codes,
        contiguous and strictly above anything previously allocated for the
        same key.  Flush only; the caller commits.

    Guarantees:
        - ``SELECT ... FOR UPDATE`` on the counter row serializes concurrent
          allocations for the same key (on SQLite, BEGIN IMMEDIATE does).
        - A missing counter row is created in a SAVEPOINT; losing the
          creation race falls back to locking the winner's row.

    Usage:
        with session_scope() as session:
            codes = CodeAllocator(session).allocate(project_id, "ISS", 3)
    """

    def __init__(self, session: Session, registry: PrefixRegistry | None = None):
        super().__init__(session)
        self._registry = registry or PrefixRegistry()

    @property
    def registry(self) -> PrefixRegistry:
        return self._registry

    def allocate(
        self,
        project_id: UUID,
        prefix: str,
        count: int = 1,
        width: int | None = None,
    ) -> list[str]:
        """
        Reserve ``count`` consecutive codes for (project_id, prefix).

        Args:
            width: zero-padding width; defaults to the prefix's registered width.

        Returns:
            The codes in ascending order.
        """
        entry = self._registry.get(prefix)
        if width is None:
            width = entry.width
        if width < 1:
            raise OutOfRangeError("width", width, 1)

        start = self.get_and_increment(project_id, prefix, count)
        codes = [format_code(prefix, n, width) for n in range(start, start + count)]

        logger.info(
            "codes_allocated",
            extra={
                "project_id": str(project_id),
                "prefix": prefix,
                "count": count,
                "first_code": codes[0],
                "last_code": codes[-1],
            },
        )
        return codes

    def get_and_increment(self, project_id: UUID, prefix: str, count: int) -> int:
        """
        Atomically add *count* to the counter and return the first number
        of the reserved range.

        Raises:
            AllocationFailedError: database unavailable.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise OutOfRangeError("count", count, 1)
        self._registry.get(prefix)

        try:
            counter = self._lock_counter(project_id, prefix)
            if counter is None:
                created = self._create_counter(project_id, prefix, count)
                if created:
                    return 1
                counter = self._lock_counter(project_id, prefix)
                if counter is None:
                    raise AllocationFailedError(
                        str(project_id), prefix, count, "counter row vanished after creation race"
                    )

            start = counter.current_value + 1
            counter.current_value += count
            self.session.flush()
        except (OperationalError, InterfaceError) as exc:
            logger.warning(
                "code_allocation_failed",
                extra={"project_id": str(project_id), "prefix": prefix, "count": count},
            )
            raise AllocationFailedError(
                str(project_id), prefix, count, type(exc).__name__
            ) from exc

        logger.debug(
            "counter_incremented",
            extra={
                "project_id": str(project_id),
                "prefix": prefix,
                "range_start": start,
                "current_value": counter.current_value,
            },
        )
        return start

    def current_value(self, project_id: UUID, prefix: str) -> int | None:
        """Highest allocated number, or None if nothing was ever allocated."""
        counter = self.session.execute(
            select(CodeCounter).where(
                CodeCounter.project_id == project_id,
                CodeCounter.prefix == prefix,
            )
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def reset(self, project_id: UUID, prefix: str, value: int = 0) -> None:
        """
        Set a counter to *value*.

        WARNING: tests and migration scripts only.  Lowering a counter in
        production re-issues codes that are already in use.
        """
        counter = self._lock_counter(project_id, prefix)
        if counter is None:
            self.session.add(
                CodeCounter(project_id=project_id, prefix=prefix, current_value=value)
            )
        else:
            counter.current_value = value
        self.session.flush()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_counter(self, project_id: UUID, prefix: str) -> CodeCounter | None:
        return self.session.execute(
            select(CodeCounter)
            .where(
                CodeCounter.project_id == project_id,
                CodeCounter.prefix == prefix,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create_counter(self, project_id: UUID, prefix: str, count: int) -> bool:
        """First use of a key.  False if another transaction created it first."""
        if self.session.get(Project, project_id) is None:
            raise ProjectNotFoundError(str(project_id))

        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                CodeCounter(project_id=project_id, prefix=prefix, current_value=count)
            )
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            logger.debug(
                "code_counter_race_retry",
                extra={"project_id": str(project_id), "prefix": prefix},
            )
            savepoint.rollback()
            return False
        return True


def allocate_codes(
    session_factory: Callable[[], Session],
    project_id: UUID,
    prefix: str,
    count: int = 1,
    width: int | None = None,
    registry: PrefixRegistry | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: Callable[[int], None] | None = None,
) -> list[str]:
    """
    Allocate codes in a dedicated transaction, retrying transient failures.

    Each attempt opens a fresh session, allocates, and commits.  Only
    AllocationFailedError is retried, and only as a whole call; every other
    error propagates at once.

    Attempts follow each other immediately.  *backoff*, when given, is
    called with the failed attempt number before the next attempt, so the
    caller decides whether and how long to wait.

    Raises:
        AllocationFailedError: still failing after *max_attempts*.
    """
    if max_attempts < 1:
        raise OutOfRangeError("max_attempts", max_attempts, 1)

    for attempt in range(1, max_attempts + 1):
        session = session_factory()
        try:
            try:
                codes = CodeAllocator(session, registry).allocate(
                    project_id, prefix, count, width
                )
                session.commit()
                return codes
            except (OperationalError, InterfaceError) as exc:
                raise AllocationFailedError(
                    str(project_id), prefix, count, type(exc).__name__
                ) from exc
        except AllocationFailedError:
            session.rollback()
            if attempt >= max_attempts:
                logger.warning(
                    "code_allocation_exhausted",
                    extra={
                        "project_id": str(project_id),
                        "prefix": prefix,
                        "attempts": attempt,
                    },
                )
                raise
            logger.warning(
                "code_allocation_retry",
                extra={
                    "project_id": str(project_id),
                    "prefix": prefix,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                },
            )
            if backoff is not None:
                backoff(attempt)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    raise AssertionError("unreachable")
