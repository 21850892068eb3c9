"""
Colour catalog registry.

Wraps PersistenceManager colour and colour-group storage with
validation. A colour referenced by any material cannot be deleted.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..errors import InvalidArgumentError, NotFoundError
from ..persistence.manager import PersistenceManager
from .models import Color, ColorGroup, ColorWithGroup

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

_COLOR_COLUMNS = {"name", "hex_color", "group_id", "texture"}


class ColorRegistry:
    """Colours and colour groups backed by SQLite."""

    def __init__(self, persistence_manager: PersistenceManager):
        self._persistence = persistence_manager

    # Groups

    def list_groups(self) -> List[ColorGroup]:
        return [ColorGroup.model_validate(g) for g in self._persistence.load_all_color_groups()]

    def get_group(self, group_id: int) -> ColorGroup:
        data = self._persistence.load_color_group(group_id)
        if data is None:
            raise NotFoundError("color group", group_id)
        return ColorGroup.model_validate(data)

    def create_group(self, name: str) -> ColorGroup:
        """
        Raises:
            InvalidArgumentError: If the name is blank or already taken
        """
        name = self._require_name(name, "Group name")
        if self._persistence.load_color_group_by_name(name):
            raise InvalidArgumentError(f"Color group already exists: {name}")
        group_id = self._persistence.insert_color_group(name)
        logger.info(f"Color group created: {group_id} ({name})")
        return self.get_group(group_id)

    def rename_group(self, group_id: int, name: str) -> ColorGroup:
        name = self._require_name(name, "Group name")
        existing = self._persistence.load_color_group_by_name(name)
        if existing and existing["id"] != group_id:
            raise InvalidArgumentError(f"Color group already exists: {name}")
        if not self._persistence.update_color_group(group_id, name):
            raise NotFoundError("color group", group_id)
        return self.get_group(group_id)

    def delete_group(self, group_id: int) -> None:
        """Delete a group. Its colours remain, ungrouped."""
        if not self._persistence.delete_color_group(group_id):
            raise NotFoundError("color group", group_id)
        logger.info(f"Color group deleted: {group_id}")

    # Colours

    def list_colors(self, search: Optional[str] = None) -> List[ColorWithGroup]:
        """List colours with their group, optionally filtered by name."""
        groups = {g.id: g for g in self.list_groups()}
        colors = []
        for data in self._persistence.load_all_colors(search=search):
            color = ColorWithGroup.model_validate(data)
            color.group = groups.get(color.group_id)
            colors.append(color)
        return colors

    def get_color(self, color_id: int) -> Color:
        data = self._persistence.load_color(color_id)
        if data is None:
            raise NotFoundError("color", color_id)
        return Color.model_validate(data)

    def create_color(
        self,
        name: str,
        hex_color: str,
        group_id: Optional[int] = None,
        texture: Optional[str] = None,
    ) -> Color:
        """
        Raises:
            InvalidArgumentError: If name is blank or hex_color is not #RRGGBB
            NotFoundError: If group_id does not exist
        """
        fields = self._validate_color_fields({
            "name": name,
            "hex_color": hex_color,
            "group_id": group_id,
            "texture": texture,
        })
        color_id = self._persistence.insert_color(fields)
        logger.info(f"Color created: {color_id} ({fields['name']})")
        return self.get_color(color_id)

    def update_color(self, color_id: int, fields: Dict[str, Any]) -> Color:
        """Partially update a colour; only the given fields change."""
        unknown = set(fields) - _COLOR_COLUMNS
        if unknown:
            raise InvalidArgumentError(f"Unknown color fields: {', '.join(sorted(unknown))}")
        fields = self._validate_color_fields(fields)
        if not self._persistence.update_color(color_id, fields):
            raise NotFoundError("color", color_id)
        return self.get_color(color_id)

    def delete_color(self, color_id: int) -> None:
        """
        Raises:
            NotFoundError: If the colour does not exist
            InvalidArgumentError: If any material still uses the colour
        """
        self.get_color(color_id)
        in_use = self._persistence.count_materials_using_color(color_id)
        if in_use:
            raise InvalidArgumentError(
                f"Color {color_id} is used by {in_use} material(s) and cannot be deleted"
            )
        self._persistence.delete_color(color_id)
        logger.info(f"Color deleted: {color_id}")

    def _validate_color_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(fields)
        if "name" in result:
            result["name"] = self._require_name(result["name"], "Color name")
        if "hex_color" in result:
            hex_color = result["hex_color"]
            if not isinstance(hex_color, str) or not _HEX_COLOR.match(hex_color):
                raise InvalidArgumentError(f"Invalid hex color: {hex_color!r}. Expected #RRGGBB")
            result["hex_color"] = hex_color.lower()
        if result.get("group_id") is not None:
            self.get_group(result["group_id"])
        return result

    @staticmethod
    def _require_name(name: Optional[str], what: str) -> str:
        if not name or not name.strip():
            raise InvalidArgumentError(f"{what} is required")
        return name.strip()
