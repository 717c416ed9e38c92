"""
Rollup -- pure progress and status arithmetic.

Responsibility:
    The weight-normalized average that defines a parent's progress, the
    status derivation rule, and the single half-up rounding rule shared by
    every percentage in the kernel.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    ProgressRollupService (write side) and WbsSelector (read side, for
    full re-derivation checks).

Rules:
    - An unset weight counts as 1.
    - If the effective weights of a sibling group sum to 0, every child
      counts as 1 (equal split).
    - parent = round_half_up(sum(w_i * p_i) / sum(w_i)).
    - status: 100 -> completed, 0 -> not started, else in progress;
      overridden to delayed when end_date < today and progress < 100.
"""

from collections.abc import Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from wbs_kernel.domain.dtos import WbsStatus
from wbs_kernel.exceptions import OutOfRangeError

ONE = Decimal("1")
HUNDRED = Decimal("100")

PROGRESS_MIN = 0
PROGRESS_MAX = 100


def round_half_up(value: Decimal) -> int:
    """Round an exact value to a whole number; .5 always rounds up."""
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


def validate_progress(progress: int) -> int:
    if isinstance(progress, bool) or not isinstance(progress, int):
        raise TypeError(f"progress must be an integer, got {type(progress).__name__}")
    if not PROGRESS_MIN <= progress <= PROGRESS_MAX:
        raise OutOfRangeError("progress", progress, PROGRESS_MIN, PROGRESS_MAX)
    return progress


def validate_weight(weight: Decimal | int | str | None) -> Decimal | None:
    """Normalize a weight to Decimal; None stays None (equal share)."""
    if weight is None:
        return None
    value = Decimal(str(weight))
    if not value.is_finite() or value < 0:
        raise OutOfRangeError("weight", weight, 0)
    return value


def effective_weights(weights: Sequence[Decimal | None]) -> list[Decimal]:
    """Weights as used by the average: None -> 1, all-zero -> all 1."""
    resolved = [ONE if w is None else Decimal(w) for w in weights]
    for w in resolved:
        if w < 0:
            raise OutOfRangeError("weight", w, 0)
    if resolved and sum(resolved) == 0:
        return [ONE] * len(resolved)
    return resolved


def weighted_progress(children: Sequence[tuple[Decimal | None, int]]) -> int:
    """
    Weight-normalized progress of a parent from its direct children.

    Args:
        children: (weight, progress) for every direct child.

    Returns:
        Whole-number progress 0..100; 0 when there are no children.
    """
    if not children:
        return 0
    weights = effective_weights([w for w, _ in children])
    total = sum(weights)
    weighted = sum(w * Decimal(p) for w, (_, p) in zip(weights, children))
    return round_half_up(weighted / total)


def derive_status(progress: int, end_date: date | None, today: date) -> WbsStatus:
    if progress >= PROGRESS_MAX:
        return WbsStatus.COMPLETED
    if end_date is not None and end_date < today:
        return WbsStatus.DELAYED
    if progress <= PROGRESS_MIN:
        return WbsStatus.NOT_STARTED
    return WbsStatus.IN_PROGRESS
