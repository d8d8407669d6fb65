from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, List, Optional
import logging
import time

from ..models import ImageAnalysis, ToolCallResult

logger = logging.getLogger(__name__)


@dataclass
class ConversationContext:
    """
    Short-term context of one conversation.

    This is NOT the learning store. Records here are not used for
    parameter validation and are never persisted.
    """

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    conversation_id: str

    messages: List[Dict[str, Any]] = field(default_factory=list)
    """
    Chat messages, oldest first: {"role", "content", "timestamp"}.
    """

    image_analysis: Optional[ImageAnalysis] = None
    """
    Analysis of the image the conversation is currently working on.
    """

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    tool_results: List[ToolCallResult] = field(default_factory=list)

    created_at: float = field(default_factory=time.time)
    last_updated_at: float = field(default_factory=time.time)


class ConversationStore:
    """
    Bounded in-memory map of conversation id to ConversationContext.

    Each conversation keeps at most `max_messages` messages and
    `max_results` tool results; the oldest entries fall off first.
    Operations never raise on unknown ids.
    """

    def __init__(self, max_messages: int = 50, max_results: int = 20) -> None:
        if max_messages <= 0 or max_results <= 0:
            raise ValueError("max_messages and max_results must be positive")

        self._max_messages = max_messages
        self._max_results = max_results
        self._conversations: "OrderedDict[str, ConversationContext]" = OrderedDict()
        self._lock = RLock()

    def _context(self, conversation_id: str) -> ConversationContext:
        context = self._conversations.get(conversation_id)
        if context is None:
            context = ConversationContext(conversation_id)
            self._conversations[conversation_id] = context
        self._conversations.move_to_end(conversation_id)
        context.last_updated_at = time.time()
        return context

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    def store_turn(
        self,
        conversation_id: str,
        user_message: str,
        assistant_response: str,
        image_analysis: Optional[ImageAnalysis] = None,
    ) -> None:
        now = time.time()

        with self._lock:
            context = self._context(conversation_id)
            context.messages.append({"role": "user", "content": user_message, "timestamp": now})
            context.messages.append({"role": "assistant", "content": assistant_response, "timestamp": now})
            del context.messages[:-self._max_messages]

            if image_analysis is not None:
                context.image_analysis = image_analysis

        logger.debug(f"[CONVERSATION] Stored turn for {conversation_id}")

    def store_results(self, conversation_id: str, results: List[ToolCallResult]) -> None:
        with self._lock:
            context = self._context(conversation_id)
            context.tool_results.extend(results)
            del context.tool_results[:-self._max_results]

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def get(self, conversation_id: str) -> Optional[ConversationContext]:
        with self._lock:
            return self._conversations.get(conversation_id)

    def history(self, conversation_id: str) -> List[Dict[str, Any]]:
        """Messages of a conversation as plain dicts; empty when unknown."""
        with self._lock:
            context = self._conversations.get(conversation_id)
            return [dict(m) for m in context.messages] if context else []

    # ------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------

    def prune(self, keep_most_recent: int) -> int:
        """Drop all but the N most recently updated conversations."""
        keep = max(0, keep_most_recent)

        with self._lock:
            removed = max(0, len(self._conversations) - keep)
            for _ in range(removed):
                self._conversations.popitem(last=False)

        if removed:
            logger.info(f"[CONVERSATION] Pruned {removed} conversations (kept {keep})")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._conversations.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            contexts = list(self._conversations.values())

        results = [r for c in contexts for r in c.tool_results]
        return {
            "conversations": len(contexts),
            "messages": sum(len(c.messages) for c in contexts),
            "tool_results": len(results),
            "successful_results": sum(1 for r in results if r.success),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)
