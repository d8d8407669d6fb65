from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Type
import hashlib
import json

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .names import ToolName


class ToolParameters(BaseModel):
    """
    Base class of every per-tool parameter contract.

    Python attribute names are snake_case; the wire format used by
    proposals and connectors is camelCase. Unknown parameters are
    rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OperationKind(str, Enum):
    COLOR_CHANGE = "color_change"
    TRANSPARENCY_CHANGE = "transparency_change"
    QUALITY_ENHANCEMENT = "quality_enhancement"
    STRUCTURAL_CHANGE = "structural_change"
    GENERATION = "generation"
    INFO_ONLY = "info_only"


class DimensionChange(str, Enum):
    PRESERVED = "preserved"   # within a small drift
    ENLARGED = "enlarged"     # must grow
    REDUCED = "reduced"       # must not grow
    FREE = "free"             # anything goes


@dataclass(frozen=True)
class EditIntent:
    """
    What a tool is *supposed* to do to an image.

    The result validator judges the visible change against this, and the
    retry engine uses `strength_parameter` to know which knob to turn on
    over- or under-change.
    """

    operation: OperationKind
    localized: bool = False
    expects_visible_change: bool = True
    adds_transparency: bool = False
    dimensions: DimensionChange = DimensionChange.PRESERVED
    strength_parameter: Optional[str] = None

    @property
    def is_info_only(self) -> bool:
        return self.operation is OperationKind.INFO_ONLY


@dataclass(frozen=True)
class Tool:
    """
    Versioned declarative contract describing one image-editing capability.

    A Tool defines WHAT action can be performed; execution is delegated
    to a Connector. It is the canonical contract between runtime layers:

        ProposalSource → ParameterValidator → ToolExecutionAdapter → Connector
                                                      ↓
                                              ResultValidator

    Any change to `params_model` or `intent` is a contract change and must
    increment `version`.
    """

    # ------------------------------------------------------------------
    # Core Identity
    # ------------------------------------------------------------------

    name: ToolName
    description: str
    connector_name: str

    # ------------------------------------------------------------------
    # Contract Layer
    # ------------------------------------------------------------------

    params_model: Type[ToolParameters]
    intent: EditIntent

    # ------------------------------------------------------------------
    # Schema Evolution
    # ------------------------------------------------------------------

    version: str = "1.0.0"

    # ------------------------------------------------------------------
    # Runtime Policy Metadata
    # ------------------------------------------------------------------

    timeout_seconds: int = 60

    # NOTE: Tuple used instead of List to preserve immutability
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.name, ToolName):
            raise TypeError("Tool name must be a ToolName member.")

        if not self.connector_name or not isinstance(self.connector_name, str):
            raise ValueError("Connector name must be a non-empty string.")

        if not (isinstance(self.params_model, type) and issubclass(self.params_model, ToolParameters)):
            raise TypeError("params_model must be a ToolParameters subclass.")

        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive.")

        object.__setattr__(self, "tags", tuple(self.tags))

    # ------------------------------------------------------------------
    # Derived Properties
    # ------------------------------------------------------------------

    @property
    def key(self) -> str:
        return f"{self.name.value}:{self.version}"

    @property
    def input_schema(self) -> Dict[str, Any]:
        """JSON schema of the wire parameters."""
        return self.params_model.model_json_schema(by_alias=True)

    @property
    def contract_hash(self) -> str:
        payload = json.dumps(
            {
                "schema": self.input_schema,
                "intent": {
                    "operation": self.intent.operation.value,
                    "localized": self.intent.localized,
                    "dimensions": self.intent.dimensions.value,
                },
                "version": self.version,
            },
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode()).hexdigest()[:12]

    # ------------------------------------------------------------------
    # Parameter Handling
    # ------------------------------------------------------------------

    def parse(self, parameters: Mapping[str, Any]) -> ToolParameters:
        """Raises pydantic.ValidationError on contract violations."""
        return self.params_model.model_validate(dict(parameters))

    def normalize(self, parameters: Mapping[str, Any]) -> Dict[str, Any]:
        """Validated wire parameters with defaults filled in."""
        return self.parse(parameters).to_wire()

    def defaults(self) -> Dict[str, Any]:
        """Wire names and default values of every optional parameter."""
        values: Dict[str, Any] = {}
        for name, info in self.params_model.model_fields.items():
            if info.is_required():
                continue
            default = info.get_default(call_default_factory=True)
            if default is not None:
                values[info.alias or name] = default
        return values

    def to_debug_string(self) -> str:
        return (
            f"[TOOL] {self.key} | connector={self.connector_name} | "
            f"operation={self.intent.operation.value} | hash={self.contract_hash}"
        )
