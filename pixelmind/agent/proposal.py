from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import re

from ..models import ToolCallProposal
from ..tools.names import ToolName

_HEX_IN_TEXT = re.compile(r"#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")
_SCALE_IN_TEXT = re.compile(r"(\d+(?:\.\d+)?)\s*x\b", re.IGNORECASE)
_ANGLE_IN_TEXT = re.compile(r"(-?\d+)\s*(?:deg|degrees|°)?", re.IGNORECASE)


class ProposalSource(ABC):
    """
    Turns a user message into proposed tool calls.

    Implementations may be:
    - Rule-based (deterministic, offline)
    - LLM-based (function calling against the tool registry's schemas)

    Proposals are untrusted: the orchestrator validates every one of them
    before anything is executed.
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def propose(
        self,
        user_message: str,
        image_bytes: Optional[bytes],
        history: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> List[ToolCallProposal]:
        raise NotImplementedError


class RuleProposalSource(ProposalSource):
    """
    Deterministic keyword planner.

    Used when no model-backed source is configured. Provides predictable,
    testable behavior and serves as a safe fallback. At most one proposal
    per recognised intent; unrecognised messages yield no proposals.
    """

    def propose(
        self,
        user_message: str,
        image_bytes: Optional[bytes],
        history: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> List[ToolCallProposal]:

        text = (user_message or "").lower()
        colors = [m.group(0) for m in _HEX_IN_TEXT.finditer(user_message or "")]
        proposals: List[ToolCallProposal] = []

        def add(tool: ToolName, params: Dict[str, Any], reason: str) -> None:
            proposals.append(ToolCallProposal(tool_name=tool.value, parameters=params, reason=reason))

        if "background" in text and ("remove" in text or "transparent" in text):
            add(ToolName.BACKGROUND_REMOVER, {}, "Background removal requested")

        elif colors and ("remove" in text or "knock" in text or "drop" in text):
            add(
                ToolName.COLOR_KNOCKOUT,
                {"colors": [{"hex": c} for c in colors], "tolerance": 30},
                f"Knock out {', '.join(colors)}",
            )

        if colors and ("recolor" in text or "change" in text or "replace" in text):
            add(
                ToolName.RECOLOR_IMAGE,
                {"colorMappings": [{"originalIndex": 0, "newColor": colors[-1]}]},
                f"Recolor the dominant color to {colors[-1]}",
            )

        if "upscale" in text or "enlarge" in text or "higher resolution" in text:
            match = _SCALE_IN_TEXT.search(text)
            factor = float(match.group(1)) if match else 2.0
            add(ToolName.UPSCALER, {"scaleFactor": factor}, f"Upscale {factor:g}x")

        if "palette" in text:
            size = 36 if "36" in text or "detailed" in text else 9
            add(ToolName.EXTRACT_COLOR_PALETTE, {"paletteSize": size}, "Palette requested")

        if "texture" in text or "distress" in text:
            add(ToolName.TEXTURE_CUT, {"textureType": "dots", "amount": 0.5}, "Distressed texture requested")

        if "flip" in text:
            direction = "vertical" if "vertical" in text else "horizontal"
            add(
                ToolName.ROTATE_FLIP,
                {"operation": {"type": "flip", "direction": direction}},
                f"Flip {direction}",
            )
        elif "rotate" in text:
            angle = self._angle(text)
            add(
                ToolName.ROTATE_FLIP,
                {"operation": {"type": "rotate", "angle": angle}},
                f"Rotate {angle} degrees",
            )

        if "crop" in text or "trim" in text:
            add(ToolName.AUTO_CROP, {}, "Trim empty space")

        if "mockup" in text:
            product = "hoodie" if "hoodie" in text else "tshirt"
            add(
                ToolName.GENERATE_MOCKUP,
                {"product": product, "style": "product-only"},
                f"{product} mockup requested",
            )

        return proposals

    @staticmethod
    def _angle(text: str) -> int:
        for match in _ANGLE_IN_TEXT.finditer(text):
            value = int(match.group(1))
            if value in (90, 180, 270, -90, -180, -270):
                return value
        return 90
