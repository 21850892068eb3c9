"""
Sheet status values.

A sheet is one physical cut unit within a material or recut batch,
addressed by zero-based index. Each index holds exactly one status.
"""

from enum import Enum


class SheetStatus(str, Enum):
    """
    Per-sheet status.

    No other states exist.
    """

    PENDING = "pending"  # Not yet processed
    CUT = "cut"  # Cut on the machine, counts toward completion
    SKIP = "skip"  # Deliberately skipped, does not count toward completion


class EntityKind(str, Enum):
    """Owner of a sheet status sequence."""

    MATERIAL = "material"
    RECUT = "recut"
