from typing import Literal

from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class UpscalerParams(ToolParameters):
    scale_factor: float = Field(ge=1, le=10)
    model: Literal["standard", "creative", "anime"] = "standard"
    face_enhance: bool = False
    output_format: Literal["png", "jpg", "webp"] = "png"


UPSCALER_TOOL = Tool(
    name=ToolName.UPSCALER,
    description="AI upscaling by `scaleFactor` (1-10).",
    connector_name="remote",
    params_model=UpscalerParams,
    intent=EditIntent(
        operation=OperationKind.QUALITY_ENHANCEMENT,
        dimensions=DimensionChange.ENLARGED,
    ),
    timeout_seconds=180,
    tags=("builtin", "ai"),
)
