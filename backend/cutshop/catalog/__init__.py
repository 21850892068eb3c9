"""
Colour catalog: colours and colour groups used by job materials.
"""

from .models import Color, ColorGroup, ColorWithGroup
from .registry import ColorRegistry

__all__ = ["Color", "ColorGroup", "ColorWithGroup", "ColorRegistry"]
