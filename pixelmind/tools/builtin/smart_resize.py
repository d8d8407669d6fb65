from typing import Literal, Optional

from pydantic import Field, model_validator

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class SmartResizeParams(ToolParameters):
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    unit: Literal["px", "percent"] = "px"
    maintain_aspect_ratio: bool = True

    @model_validator(mode="after")
    def _needs_a_dimension(self) -> "SmartResizeParams":
        if self.width is None and self.height is None:
            raise ValueError("width or height is required")
        return self


SMART_RESIZE_TOOL = Tool(
    name=ToolName.SMART_RESIZE,
    description="Resize to a target width/height in pixels or percent.",
    connector_name="local",
    params_model=SmartResizeParams,
    intent=EditIntent(
        operation=OperationKind.STRUCTURAL_CHANGE,
        dimensions=DimensionChange.FREE,
    ),
    tags=("builtin", "geometry"),
)
