from typing import Literal, Optional

from pydantic import Field

from ..names import ToolName
from ..schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters
from .common import HEX_PATTERN


class GenerateMockupParams(ToolParameters):
    product: Literal["tshirt", "hoodie", "mug", "poster", "phone-case", "tote-bag"]
    style: Literal["product-only", "lifestyle-model"]
    color: Literal["white", "black", "gray", "red", "blue", "green", "yellow", "custom"] = "white"
    custom_color: Optional[str] = Field(default=None, pattern=HEX_PATTERN)
    placement: Literal["center", "left-chest", "full-front", "full-back"] = "center"
    size: Literal["small", "medium", "large", "xl"] = "medium"


GENERATE_MOCKUP_TOOL = Tool(
    name=ToolName.GENERATE_MOCKUP,
    description="Render the design onto a product mockup.",
    connector_name="remote",
    params_model=GenerateMockupParams,
    intent=EditIntent(
        operation=OperationKind.GENERATION,
        dimensions=DimensionChange.FREE,
    ),
    timeout_seconds=180,
    tags=("builtin", "ai"),
)
