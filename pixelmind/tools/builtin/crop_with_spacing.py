from typing import Literal

from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class CropWithSpacingParams(ToolParameters):
    spacing: float = Field(ge=0)
    unit: Literal["px", "inches"] = "px"
    dpi: float = Field(default=300, gt=0)


CROP_WITH_SPACING_TOOL = Tool(
    name=ToolName.CROP_WITH_SPACING,
    description="Crop to the design leaving a fixed margin, in pixels or inches.",
    connector_name="local",
    params_model=CropWithSpacingParams,
    intent=EditIntent(
        operation=OperationKind.STRUCTURAL_CHANGE,
        dimensions=DimensionChange.FREE,
    ),
    tags=("builtin", "geometry"),
)
