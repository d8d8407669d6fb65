from typing import Annotated, Literal, Union

from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class RotateOperation(ToolParameters):
    type: Literal["rotate"]
    angle: Literal[90, 180, 270, -90, -180, -270]


class FlipOperation(ToolParameters):
    type: Literal["flip"]
    direction: Literal["horizontal", "vertical"]


class RotateFlipParams(ToolParameters):
    operation: Annotated[Union[RotateOperation, FlipOperation], Field(discriminator="type")]


ROTATE_FLIP_TOOL = Tool(
    name=ToolName.ROTATE_FLIP,
    description="Rotate by a multiple of 90 degrees or flip horizontally/vertically.",
    connector_name="local",
    params_model=RotateFlipParams,
    intent=EditIntent(
        operation=OperationKind.STRUCTURAL_CHANGE,
        dimensions=DimensionChange.FREE,
    ),
    timeout_seconds=10,
    tags=("builtin", "geometry"),
)
