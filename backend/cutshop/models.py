"""
Shared Pydantic base for API-facing models.

Python attributes are snake_case; JSON uses camelCase
(materialId, sheetIndex, totalSheets, ...).
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )
