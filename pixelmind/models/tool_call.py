from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping
import uuid


@dataclass(frozen=True)
class ToolCallProposal:
    """
    A proposed instruction to run one image-editing tool.

    This is the *intent packet* handed over by the proposal source
    (normally an LLM). Nothing here has been checked yet: the tool name
    may be unknown and the parameters may be hallucinated.

    Architectural Role
    ------------------
    ProposalSource → ToolCallProposal → Orchestrator → ParameterValidator
    """

    tool_name: str
    """Identifier of the tool to invoke."""

    parameters: Mapping[str, Any]
    """Raw parameters as proposed, keyed by wire (camelCase) names."""

    # --- System Metadata ---
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Unique identifier for tracing this proposal."""

    reason: str = ""
    """Proposer explanation for why this tool was selected."""

    def __post_init__(self):
        object.__setattr__(self, "tool_name", str(self.tool_name))
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters or {})))

    def arguments(self) -> Dict[str, Any]:
        """Mutable copy of the parameters."""
        return dict(self.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tool_name": self.tool_name,
            "parameters": dict(self.parameters),
            "reason": self.reason,
        }

    def __repr__(self) -> str:
        return f"ToolCallProposal(id={self.id[:8]}, tool='{self.tool_name}')"
