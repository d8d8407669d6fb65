from __future__ import annotations

from typing import Any, Dict, Iterable, List, Union
from threading import RLock
import logging

from .names import ToolName
from .schema import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Authoritative registry of the image tools available to the pipeline.

    This forms the capability boundary: a proposal naming a tool that is
    not registered here is never executed. Lookups accept either the
    `ToolName` member or its string value.
    """

    def __init__(self) -> None:
        self._tools: Dict[ToolName, Tool] = {}
        self._lock = RLock()
        logger.info("[TOOL REGISTRY] Initialized (empty)")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: Tool) -> None:

        with self._lock:
            if tool.name in self._tools:
                raise ValueError(f"Tool '{tool.name.value}' is already registered.")

            self._tools[tool.name] = tool

            logger.info(
                "[TOOL REGISTRY] Tool registered | total=%d",
                len(self._tools)
            )
            logger.info(tool.to_debug_string())

    def register_or_update(self, tool: Tool) -> str:
        """
        Idempotent registration.

        Returns:
            "registered" | "updated" | "unchanged"
        """

        with self._lock:
            existing = self._tools.get(tool.name)

            if existing is None:
                self._tools[tool.name] = tool
                logger.info(tool.to_debug_string())
                return "registered"

            if existing.contract_hash == tool.contract_hash:
                logger.info("[TOOL REGISTRY] Tool unchanged: %s", tool.name.value)
                return "unchanged"

            self._tools[tool.name] = tool
            logger.info("[TOOL REGISTRY] Tool updated: %s", tool.name.value)
            return "updated"

    def register_many(self, tools: Iterable[Tool]) -> None:

        tools = list(tools)

        with self._lock:
            for tool in tools:
                if tool.name in self._tools:
                    raise ValueError(f"Tool '{tool.name.value}' is already registered.")

            for tool in tools:
                self._tools[tool.name] = tool
                logger.info("[TOOL REGISTRY] Bulk registered: %s", tool.name.value)

            logger.info(
                "[TOOL REGISTRY] Bulk registration complete | total=%d",
                len(self._tools)
            )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, tool_name: Union[str, ToolName]) -> Tool:

        with self._lock:
            try:
                return self._tools[ToolName.parse(tool_name)]
            except KeyError:
                logger.error(
                    "[TOOL REGISTRY] Lookup FAILED: %s | available=%s",
                    tool_name,
                    [t.value for t in self._tools]
                )
                raise KeyError(f"Tool '{tool_name}' is not registered.") from None

    def has_tool(self, tool_name: Union[str, ToolName]) -> bool:
        try:
            self.get(tool_name)
        except KeyError:
            return False
        return True

    def list_tools(self) -> List[Tool]:

        with self._lock:
            return sorted(self._tools.values(), key=lambda t: t.name.value)

    def list_tool_names(self) -> List[str]:

        with self._lock:
            return sorted(t.value for t in self._tools)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    # ------------------------------------------------------------------
    # Schema Access
    # ------------------------------------------------------------------

    def describe(self, tool_name: Union[str, ToolName]) -> Dict[str, Any]:
        """JSON schema of the tool's wire parameters."""
        return self.get(tool_name).input_schema

    def get_manifest(self) -> List[Dict[str, Any]]:
        """
        Function-calling manifest handed to the proposal source.
        """

        with self._lock:
            manifest = [
                {
                    "name": tool.name.value,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                    "version": tool.version,
                    "operation": tool.intent.operation.value,
                    "tags": list(tool.tags),
                }
                for tool in sorted(self._tools.values(), key=lambda t: t.name.value)
            ]

        logger.info("[TOOL REGISTRY] Manifest generated | count=%d", len(manifest))
        return manifest
