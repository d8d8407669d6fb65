from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import time
from typing import Any, Dict, Optional, Tuple

from .registry import ToolRegistry
from .schema import Tool
from ..connectors.manager import ConnectorManager
from ..models import ExecutionOutcome

logger = logging.getLogger(__name__)


class ToolExecutionAdapter:
    """
    Thin pass-through from a validated tool call to its connector.

    The adapter owns only timing capture and error normalisation: every
    exception, timeout or error payload becomes `ExecutionOutcome.error`.
    It is called exactly once per attempt and never retries.
    """

    def __init__(self, registry: ToolRegistry, connectors: ConnectorManager) -> None:
        self._registry = registry
        self._connectors = connectors

    # ============================================================
    # MAIN EXECUTION
    # ============================================================

    async def execute(
        self,
        tool: Tool,
        parameters: Dict[str, Any],
        image: Optional[bytes],
    ) -> ExecutionOutcome:

        start = time.monotonic()

        try:
            connector = self._connectors.get(tool.connector_name)
        except (KeyError, RuntimeError) as e:
            return self._failure_result(f"Connector unavailable: {e}", start)

        timeout = tool.timeout_seconds
        logger.info(f"[EXECUTOR] Calling {tool.key} via '{tool.connector_name}'")

        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(connector.execute, tool, dict(parameters), image, timeout),
                timeout=timeout,
            )
        except asyncio.CancelledError:
            raise
        except (asyncio.TimeoutError, TimeoutError):
            return self._failure_result(f"Execution timed out after {timeout}s", start)
        except Exception as e:
            return self._failure_result(self._describe_error(e), start)

        try:
            result_image, output = self._split_output(raw)
        except ValueError as e:
            return self._failure_result(f"Invalid output: {e}", start)

        if output and output.get("error"):
            return self._failure_result(str(output["error"]), start)

        outcome = self._success_result(result_image, output, start)
        logger.info(f"[EXECUTOR] {tool.name.value} -> {outcome!r}")
        return outcome

    async def invoke(
        self,
        tool_name: str,
        parameters: Dict[str, Any],
        image: Optional[bytes],
    ) -> ExecutionOutcome:
        """Name-based entry point; unknown tools yield a failed outcome."""
        try:
            tool = self._registry.get(tool_name)
        except KeyError as e:
            return ExecutionOutcome(success=False, error=str(e).strip("'\""))
        return await self.execute(tool, parameters, image)

    # ============================================================
    # OUTPUT NORMALISATION
    # ============================================================

    @staticmethod
    def _split_output(raw: Any) -> Tuple[Optional[bytes], Optional[Dict[str, Any]]]:

        if raw is None:
            return None, None

        if isinstance(raw, (bytes, bytearray)):
            return bytes(raw), None

        if not isinstance(raw, dict):
            raise ValueError(f"Tool output must be bytes or a dictionary, got {type(raw).__name__}")

        output = dict(raw)
        image = output.pop("image", None)

        if isinstance(image, str):
            try:
                image = base64.b64decode(image, validate=True)
            except (binascii.Error, ValueError):
                raise ValueError("Image field is not valid base64")
        elif isinstance(image, bytearray):
            image = bytes(image)
        elif image is not None and not isinstance(image, bytes):
            raise ValueError(f"Unsupported image payload type {type(image).__name__}")

        return image, output or None

    @staticmethod
    def _describe_error(error: Exception) -> str:
        message = str(error).strip()
        name = type(error).__name__
        if not message:
            return name
        # keep the exception class visible; classifiers match on it
        return message if name in ("RuntimeError", "Exception") else f"{name}: {message}"

    # ============================================================
    # RESULT BUILDERS
    # ============================================================

    def _success_result(
        self,
        result_image: Optional[bytes],
        output: Optional[Dict[str, Any]],
        start_time: float,
    ) -> ExecutionOutcome:

        return ExecutionOutcome(
            success=True,
            result_image=result_image,
            output=output,
            error=None,
            duration_ms=self._latency_ms(start_time),
        )

    def _failure_result(self, error: str, start_time: float) -> ExecutionOutcome:

        logger.warning(f"[EXECUTOR] Failure: {error}")

        return ExecutionOutcome(
            success=False,
            error=error,
            duration_ms=self._latency_ms(start_time),
        )

    @staticmethod
    def _latency_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    # ------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def connectors(self) -> ConnectorManager:
        return self._connectors
