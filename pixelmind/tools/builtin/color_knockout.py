from typing import List, Literal

from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters
from .common import ColorSpec


class ColorKnockoutParams(ToolParameters):
    colors: List[ColorSpec] = Field(min_length=1)
    tolerance: float = Field(default=30, ge=0, le=100)
    replace_mode: Literal["transparency", "color", "mask"] = "transparency"
    feather: float = Field(default=0, ge=0, le=20)
    anti_aliasing: bool = True


COLOR_KNOCKOUT_TOOL = Tool(
    name=ToolName.COLOR_KNOCKOUT,
    description=(
        "Remove specific colors from an image with adjustable tolerance and "
        "anti-aliasing. Colors must exist in the image."
    ),
    connector_name="local",
    params_model=ColorKnockoutParams,
    intent=EditIntent(
        operation=OperationKind.TRANSPARENCY_CHANGE,
        localized=True,
        adds_transparency=True,
        dimensions=DimensionChange.PRESERVED,
        strength_parameter="tolerance",
    ),
    tags=("builtin", "color"),
)
