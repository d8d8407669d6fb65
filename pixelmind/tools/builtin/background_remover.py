from typing import Literal, Optional

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters


class BackgroundRemoverParams(ToolParameters):
    model: Literal["bria", "codeplugtech", "fallback"] = "bria"
    output_format: Literal["png", "webp"] = "png"
    background_color: Optional[str] = None


BACKGROUND_REMOVER_TOOL = Tool(
    name=ToolName.BACKGROUND_REMOVER,
    description="AI background removal. Produces a transparent background.",
    connector_name="remote",
    params_model=BackgroundRemoverParams,
    intent=EditIntent(
        operation=OperationKind.TRANSPARENCY_CHANGE,
        adds_transparency=True,
        dimensions=DimensionChange.PRESERVED,
    ),
    timeout_seconds=120,
    tags=("builtin", "ai"),
)
