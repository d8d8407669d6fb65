from typing import Literal

from ..names import ToolName
from ..schema import EditIntent, OperationKind, Tool, ToolParameters


class ExtractColorPaletteParams(ToolParameters):
    palette_size: Literal[9, 36] = 9
    algorithm: Literal["smart", "detailed"] = "smart"


EXTRACT_COLOR_PALETTE_TOOL = Tool(
    name=ToolName.EXTRACT_COLOR_PALETTE,
    description="Extract the dominant color palette (9 or 36 colors) from the image.",
    connector_name="local",
    params_model=ExtractColorPaletteParams,
    intent=EditIntent(
        operation=OperationKind.INFO_ONLY,
        expects_visible_change=False,
    ),
    tags=("builtin", "color", "info"),
)
