from typing import Optional

from pydantic import Field, field_validator

from ...analysis.color import normalize_hex
from ..schema import ToolParameters

HEX_PATTERN = r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$"


class ColorSpec(ToolParameters):
    """A color parameter. `hex` is authoritative; channels are optional."""

    hex: str = Field(pattern=HEX_PATTERN)
    r: Optional[int] = Field(default=None, ge=0, le=255)
    g: Optional[int] = Field(default=None, ge=0, le=255)
    b: Optional[int] = Field(default=None, ge=0, le=255)

    @field_validator("hex")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_hex(value)
