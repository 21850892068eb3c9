"""
Sheet status sequence rules.

The store is permissive: any index may be set to any status in any order.
The pending -> cut -> skip -> pending cycle is a client activation policy
and lives here so every client computes it the same way.

All helpers are pure and return new lists.
"""

from typing import Dict, List, Sequence, Union

from ..errors import InvalidArgumentError, OutOfRangeError
from .models import SheetStatus


_CYCLE: Dict[SheetStatus, SheetStatus] = {
    SheetStatus.PENDING: SheetStatus.CUT,
    SheetStatus.CUT: SheetStatus.SKIP,
    SheetStatus.SKIP: SheetStatus.PENDING,
}


def next_status(current: SheetStatus) -> SheetStatus:
    """
    Compute the status a single activation advances to.

    Args:
        current: The currently displayed status

    Returns:
        The next status in the pending -> cut -> skip -> pending cycle
    """
    return _CYCLE[SheetStatus(current)]


def parse_status(value: Union[str, SheetStatus]) -> SheetStatus:
    """
    Validate a raw status value.

    Raises:
        InvalidArgumentError: If the value is not pending, cut or skip
    """
    try:
        return SheetStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in SheetStatus)
        raise InvalidArgumentError(f"Invalid sheet status: {value!r}. Valid values: {valid}")


def validate_count(count, what: str = "count") -> int:
    """Reject non-integer and non-positive sheet counts."""
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidArgumentError(f"{what} must be a positive integer, got {count!r}")
    return count


def check_index(sheet_index: int, size: int) -> None:
    """
    Raises:
        OutOfRangeError: Unless 0 <= sheet_index < size
    """
    if isinstance(sheet_index, bool) or not isinstance(sheet_index, int):
        raise InvalidArgumentError(f"Sheet index must be an integer, got {sheet_index!r}")
    if sheet_index < 0 or sheet_index >= size:
        raise OutOfRangeError(sheet_index, size)


def pending_sequence(length: int) -> List[SheetStatus]:
    return [SheetStatus.PENDING] * length


def normalize(statuses: Sequence, length: int) -> List[SheetStatus]:
    """
    Coerce a stored sequence to exactly `length` entries.

    Pads with pending and truncates trailing entries. Unknown stored
    values read back as pending.
    """
    result = []
    for raw in list(statuses or [])[:length]:
        try:
            result.append(SheetStatus(raw))
        except ValueError:
            result.append(SheetStatus.PENDING)
    result.extend(pending_sequence(length - len(result)))
    return result


def with_status(statuses: Sequence[SheetStatus], sheet_index: int, status: SheetStatus) -> List[SheetStatus]:
    """Return a copy with one index replaced."""
    check_index(sheet_index, len(statuses))
    result = list(statuses)
    result[sheet_index] = status
    return result


def without_index(statuses: Sequence[SheetStatus], sheet_index: int) -> List[SheetStatus]:
    """Return a copy with one index removed; later entries shift left."""
    check_index(sheet_index, len(statuses))
    return list(statuses[:sheet_index]) + list(statuses[sheet_index + 1:])


def count_cut(statuses: Sequence[SheetStatus]) -> int:
    return sum(1 for s in statuses if s == SheetStatus.CUT)


def with_cut_count(statuses: Sequence[SheetStatus], completed: int) -> List[SheetStatus]:
    """
    Rewrite a sequence so exactly `completed` entries are cut.

    Existing cut entries are kept from the front; surplus cut entries are
    reset to pending from the back. Missing cuts are taken from pending
    entries first, then skipped ones, front to back.
    """
    if isinstance(completed, bool) or not isinstance(completed, int):
        raise InvalidArgumentError(f"Completed sheets must be an integer, got {completed!r}")
    if completed < 0 or completed > len(statuses):
        raise InvalidArgumentError(
            f"Completed sheets must be between 0 and {len(statuses)}, got {completed}"
        )

    result = list(statuses)
    surplus = count_cut(result) - completed

    for index in reversed(range(len(result))):
        if surplus <= 0:
            break
        if result[index] == SheetStatus.CUT:
            result[index] = SheetStatus.PENDING
            surplus -= 1

    for source in (SheetStatus.PENDING, SheetStatus.SKIP):
        for index, value in enumerate(result):
            if surplus >= 0:
                break
            if value == source:
                result[index] = SheetStatus.CUT
                surplus += 1

    return result


def has_pending(statuses: Sequence[SheetStatus]) -> bool:
    return any(s == SheetStatus.PENDING for s in statuses)
