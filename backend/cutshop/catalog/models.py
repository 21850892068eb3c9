"""
Colour catalog models.
"""

from datetime import datetime
from typing import Optional

from ..models import ApiModel


class ColorGroup(ApiModel):
    id: int
    name: str
    created_at: datetime


class Color(ApiModel):
    """A sheet colour; texture is an optional image URL."""

    id: int
    name: str
    hex_color: str
    group_id: Optional[int] = None
    texture: Optional[str] = None
    created_at: datetime


class ColorWithGroup(Color):
    group: Optional[ColorGroup] = None
