from dataclasses import dataclass, field
from enum import Enum
from typing import List
import logging

from ..models import RetryAttempt

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    VALIDATING = "validating"
    EXECUTING = "executing"
    CHECKING_RESULT = "checking_result"
    DECIDING_RETRY = "deciding_retry"
    ADJUSTING = "adjusting"
    DONE_SUCCESS = "done_success"
    DONE_FAILURE = "done_failure"

    @property
    def is_terminal(self) -> bool:
        return self in (LoopState.DONE_SUCCESS, LoopState.DONE_FAILURE)


# Allowed moves of the per-call state machine.
_TRANSITIONS = {
    LoopState.VALIDATING: (LoopState.EXECUTING, LoopState.DECIDING_RETRY, LoopState.DONE_FAILURE),
    LoopState.EXECUTING: (LoopState.CHECKING_RESULT, LoopState.DECIDING_RETRY, LoopState.DONE_FAILURE),
    LoopState.CHECKING_RESULT: (LoopState.DONE_SUCCESS, LoopState.DECIDING_RETRY, LoopState.DONE_FAILURE),
    LoopState.DECIDING_RETRY: (LoopState.ADJUSTING, LoopState.DONE_FAILURE),
    LoopState.ADJUSTING: (LoopState.VALIDATING, LoopState.DONE_FAILURE),
    LoopState.DONE_SUCCESS: (),
    LoopState.DONE_FAILURE: (),
}


@dataclass
class LoopContext:
    """
    Mutable runtime state of ONE tool-call loop.

    This is NOT long-term memory; that belongs to the learning store.
    Each concurrent tool call owns its own LoopContext, so nothing here
    is shared between tasks.
    """

    # ------------------------------------------------------------------
    # Call Identity
    # ------------------------------------------------------------------

    tool_name: str
    proposal_id: str = ""

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    state: LoopState = LoopState.VALIDATING

    attempts: List[RetryAttempt] = field(default_factory=list)
    """
    Audit trail, one entry per pass through the loop.
    """

    # ------------------------------------------------------------------
    # State Update Helpers
    # ------------------------------------------------------------------

    @property
    def attempt_number(self) -> int:
        """1-based number of the attempt in progress."""
        return len(self.attempts) + 1

    @property
    def retries_done(self) -> int:
        return max(0, len(self.attempts) - 1)

    def move(self, target: LoopState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal loop transition {self.state.value} -> {target.value}")

        logger.debug(
            f"[ORCHESTRATOR] {self.tool_name}#{self.attempt_number} "
            f"{self.state.value} -> {target.value}"
        )
        self.state = target

    def record_attempt(self, attempt: RetryAttempt) -> None:
        self.attempts.append(attempt)
