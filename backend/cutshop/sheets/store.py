"""
Sheet Status Store.

Server-authoritative record of each sheet's status within a material
and within each recut entry of a material. Every mutation is a single
read-modify-write under the storage write lock: the status sequence,
the sheet count and the cached completed count change together.

The store is a key-indexed set operation. It validates the target
status value and the index bounds only; it does not enforce the
pending -> cut -> skip cycle that clients use.
"""

import logging
from typing import List, Optional, Tuple, Union

from ..errors import NotFoundError
from ..jobs.models import Material, RecutEntry
from ..persistence.manager import PersistenceManager
from .models import SheetStatus
from .state import (
    normalize,
    parse_status,
    pending_sequence,
    validate_count,
    with_cut_count,
    with_status,
    without_index,
)

logger = logging.getLogger(__name__)


class SheetStatusStore:
    """
    Canonical per-sheet status for materials and recut entries.

    All operations return the updated entity as stored.
    """

    def __init__(self, persistence_manager: PersistenceManager):
        self._persistence = persistence_manager

    # Reads

    def get_material(self, material_id: int) -> Material:
        """
        Raises:
            NotFoundError: If the material does not exist
        """
        data = self._persistence.load_material(material_id)
        if data is None:
            raise NotFoundError("material", material_id)
        return Material.model_validate(data)

    def get_recut(self, recut_id: int) -> RecutEntry:
        """
        Raises:
            NotFoundError: If the recut entry does not exist
        """
        data = self._persistence.load_recut(recut_id)
        if data is None:
            raise NotFoundError("recut entry", recut_id)
        return RecutEntry.model_validate(data)

    def list_recut_entries(self, material_id: int) -> List[RecutEntry]:
        """Recut entries of a material, oldest first."""
        self.get_material(material_id)
        return [RecutEntry.model_validate(r) for r in self._persistence.load_recuts(material_id)]

    # Status transitions

    def set_sheet_status(
        self,
        material_id: int,
        sheet_index: int,
        status: Union[str, SheetStatus],
    ) -> Material:
        """
        Set one sheet of a material to the given status.

        Any status may replace any other; setting the current value again
        is a no-op rewrite.

        Raises:
            InvalidArgumentError: If status is not pending, cut or skip
            NotFoundError: If the material does not exist
            OutOfRangeError: Unless 0 <= sheet_index < total_sheets
        """
        target = parse_status(status)

        def mutate(statuses: List[str], total: int) -> Tuple[List[SheetStatus], int]:
            return with_status(normalize(statuses, total), sheet_index, target), total

        material = self._mutate_material(material_id, mutate)
        logger.debug(f"Material {material_id} sheet {sheet_index} -> {target.value}")
        return material

    def set_recut_sheet_status(
        self,
        recut_id: int,
        sheet_index: int,
        status: Union[str, SheetStatus],
    ) -> RecutEntry:
        """
        Set one sheet of a recut entry, bounded by the entry's quantity.

        Raises:
            InvalidArgumentError: If status is not pending, cut or skip
            NotFoundError: If the recut entry does not exist
            OutOfRangeError: Unless 0 <= sheet_index < quantity
        """
        target = parse_status(status)

        def mutate(statuses: List[str], quantity: int) -> Tuple[List[SheetStatus], int]:
            return with_status(normalize(statuses, quantity), sheet_index, target), quantity

        data = self._persistence.mutate_recut_sheets(recut_id, mutate)
        if data is None:
            raise NotFoundError("recut entry", recut_id)
        logger.debug(f"Recut {recut_id} sheet {sheet_index} -> {target.value}")
        return RecutEntry.model_validate(data)

    def set_completed_count(self, material_id: int, completed: int) -> Material:
        """
        Rewrite a material so exactly `completed` sheets are cut.

        Backs the legacy progress endpoint that reports a bare count.

        Raises:
            InvalidArgumentError: If completed is outside 0..total_sheets
            NotFoundError: If the material does not exist
        """

        def mutate(statuses: List[str], total: int) -> Tuple[List[SheetStatus], int]:
            return with_cut_count(normalize(statuses, total), completed), total

        return self._mutate_material(material_id, mutate)

    # Resizing

    def delete_sheet(self, material_id: int, sheet_index: int) -> Material:
        """
        Remove one sheet from a material.

        Later sheets shift down by one index; total_sheets decreases by one.

        Raises:
            NotFoundError: If the material does not exist
            OutOfRangeError: Unless 0 <= sheet_index < total_sheets
        """

        def mutate(statuses: List[str], total: int) -> Tuple[List[SheetStatus], int]:
            return without_index(normalize(statuses, total), sheet_index), total - 1

        material = self._mutate_material(material_id, mutate)
        logger.debug(f"Material {material_id} sheet {sheet_index} deleted ({material.total_sheets} remain)")
        return material

    def add_sheets(
        self,
        material_id: int,
        count: int,
        is_recut: bool = False,
        user_id: Optional[int] = None,
    ) -> Material:
        """
        Add sheets to a material.

        Non-recut: appends `count` pending sheets to the material itself.
        Recut: creates a new recut entry with quantity=count instead.

        Returns:
            The material as stored afterwards (recut entries included)

        Raises:
            InvalidArgumentError: If count is not a positive integer
            NotFoundError: If the material does not exist
        """
        validate_count(count, "Additional sheets")

        if is_recut:
            self.add_recut_entry(material_id, count, reason=None, user_id=user_id)
            return self.get_material(material_id)

        def mutate(statuses: List[str], total: int) -> Tuple[List[SheetStatus], int]:
            return normalize(statuses, total) + pending_sequence(count), total + count

        return self._mutate_material(material_id, mutate)

    def add_recut_entry(
        self,
        material_id: int,
        quantity: int,
        reason: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> RecutEntry:
        """
        Create a rework batch with an all-pending status sequence.

        Raises:
            InvalidArgumentError: If quantity is not a positive integer
            NotFoundError: If the material does not exist
        """
        validate_count(quantity, "Recut quantity")
        self.get_material(material_id)

        recut_id = self._persistence.insert_recut({
            "material_id": material_id,
            "quantity": quantity,
            "reason": reason,
            "sheet_statuses": [s.value for s in pending_sequence(quantity)],
            "user_id": user_id,
        })
        logger.debug(f"Recut {recut_id} created for material {material_id} ({quantity} sheets)")
        return self.get_recut(recut_id)

    def delete_recut_entry(self, recut_id: int) -> RecutEntry:
        """
        Delete a recut entry.

        Returns:
            The entry as it was before deletion

        Raises:
            NotFoundError: If the recut entry does not exist
        """
        recut = self.get_recut(recut_id)
        if not self._persistence.delete_recut(recut_id):
            raise NotFoundError("recut entry", recut_id)
        return recut

    def _mutate_material(self, material_id: int, mutate) -> Material:
        data = self._persistence.mutate_material_sheets(material_id, mutate)
        if data is None:
            raise NotFoundError("material", material_id)
        return Material.model_validate(data)
