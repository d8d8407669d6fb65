from typing import List, Literal

from pydantic import Field, field_validator

from ...analysis.color import normalize_hex
from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters
from .common import HEX_PATTERN


class ColorMapping(ToolParameters):
    original_index: int = Field(ge=0)
    new_color: str = Field(pattern=HEX_PATTERN)

    @field_validator("new_color")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_hex(value)


class RecolorImageParams(ToolParameters):
    color_mappings: List[ColorMapping] = Field(min_length=1)
    blend_mode: Literal["replace", "overlay", "multiply"] = "replace"
    tolerance: float = Field(default=30, ge=0, le=100)


RECOLOR_IMAGE_TOOL = Tool(
    name=ToolName.RECOLOR_IMAGE,
    description=(
        "Replace palette colors with new colors. `originalIndex` refers to the "
        "image's dominant palette."
    ),
    connector_name="local",
    params_model=RecolorImageParams,
    intent=EditIntent(
        operation=OperationKind.COLOR_CHANGE,
        localized=True,
        dimensions=DimensionChange.PRESERVED,
        strength_parameter="tolerance",
    ),
    tags=("builtin", "color"),
)
