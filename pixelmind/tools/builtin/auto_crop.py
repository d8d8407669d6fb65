from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class AutoCropParams(ToolParameters):
    tolerance: float = Field(default=30, ge=0, le=255)
    min_padding: int = Field(default=0, ge=0, le=100)
    background_color: str = "white"


AUTO_CROP_TOOL = Tool(
    name=ToolName.AUTO_CROP,
    description=(
        "Trim empty space around the design. `backgroundColor` accepts white, "
        "black, transparent, auto, a color name or a hex color."
    ),
    connector_name="local",
    params_model=AutoCropParams,
    intent=EditIntent(
        operation=OperationKind.STRUCTURAL_CHANGE,
        dimensions=DimensionChange.REDUCED,
    ),
    tags=("builtin", "geometry"),
)
