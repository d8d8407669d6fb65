from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..tools.schema import Tool


class ExecutionConnector(ABC):
    """
    Abstract execution backend: the boundary between the decision core
    and the code that actually manipulates pixels.

    A connector may run a local image routine, call a hosted model, or
    forward to another service. It knows nothing about validation or
    retries.

    Architectural Role
    -------------------
    ToolExecutionAdapter enforces *policy* (timing, timeouts, error
    normalisation). ExecutionConnector performs the *actual operation*.

    Connectors must:
        • Never mutate the provided parameters
        • Raise TimeoutError on timeout
        • Raise standard Exceptions for execution failures
        • Return either encoded image bytes, or a dict whose optional
          "image" entry holds the encoded result (bytes or base64 text)
    """

    @abstractmethod
    def execute(
        self,
        tool: "Tool",
        parameters: Dict[str, Any],
        image: Optional[bytes],
        timeout: int,
    ) -> Any:
        """
        Run one tool call.

        Parameters
        ----------
        tool : Tool
            Contract of the tool being invoked.

        parameters : Dict[str, Any]
            Validated wire parameters. MUST NOT be mutated.

        image : Optional[bytes]
            Encoded source image.

        timeout : int
            Maximum allowed execution time in seconds.
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Optional Lifecycle Hooks
    # ------------------------------------------------------------------

    def health(self) -> bool:
        return True

    def shutdown(self) -> None:
        pass
