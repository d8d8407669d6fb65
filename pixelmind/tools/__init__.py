from .names import ToolName
from .schema import DimensionChange, EditIntent, OperationKind, Tool, ToolParameters
from .registry import ToolRegistry
from .executor import ToolExecutionAdapter

__all__ = [
    "ToolName",
    "DimensionChange",
    "EditIntent",
    "OperationKind",
    "Tool",
    "ToolParameters",
    "ToolRegistry",
    "ToolExecutionAdapter",
]
