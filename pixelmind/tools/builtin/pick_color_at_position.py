from pydantic import Field

from ..names import ToolName
from ..schema import EditIntent, OperationKind, Tool, ToolParameters


class PickColorParams(ToolParameters):
    x: int = Field(ge=0)
    y: int = Field(ge=0)


PICK_COLOR_AT_POSITION_TOOL = Tool(
    name=ToolName.PICK_COLOR_AT_POSITION,
    description="Return the color at pixel (x, y).",
    connector_name="local",
    params_model=PickColorParams,
    intent=EditIntent(
        operation=OperationKind.INFO_ONLY,
        expects_visible_change=False,
    ),
    timeout_seconds=10,
    tags=("builtin", "color", "info"),
)
