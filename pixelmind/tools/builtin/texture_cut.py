from typing import Literal

from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class TextureCutParams(ToolParameters):
    texture_type: Literal["dots", "lines", "grid", "noise", "custom"] = "dots"
    invert: bool = False
    amount: float = Field(default=0.5, ge=0, le=1)
    scale: float = Field(default=1.0, ge=0.1, le=5)
    rotation: float = Field(default=0, ge=0, le=360)
    tile: bool = True


TEXTURE_CUT_TOOL = Tool(
    name=ToolName.TEXTURE_CUT,
    description="Cut a distressed texture pattern (dots, lines, grid, noise) into the design.",
    connector_name="local",
    params_model=TextureCutParams,
    intent=EditIntent(
        operation=OperationKind.TRANSPARENCY_CHANGE,
        localized=True,
        adds_transparency=True,
        dimensions=DimensionChange.PRESERVED,
        strength_parameter="amount",
    ),
    tags=("builtin", "texture"),
)
