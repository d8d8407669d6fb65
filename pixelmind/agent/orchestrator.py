"""
Orchestration Loop
==================

Drives one proposed tool call through validate → execute → check →
retry until it succeeds, runs out of retries, or hits its deadline.

Architectural Role
------------------
    ProposalSource
         ↓
    Orchestrator ── GroundTruthAnalyzer (once per image)
         ↓
    ParameterValidator → ToolExecutionAdapter → ResultValidator
         ↓                                          ↓
    FailureClassifier → RetryStrategyEngine ←───────┘
         ↓
    LearningStore (background write on confident success)

Every layer reports failure as a value; the orchestrator never raises to
its caller. Concurrent tool calls share only the immutable ImageAnalysis
and the thread-safe learning store.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence, Set
import asyncio
import logging
import time

from ..analysis.analyzer import GroundTruthAnalyzer
from ..config import PipelineConfig
from ..learning.conversations import ConversationStore
from ..learning.store import LearningStore
from ..logging_config import measure
from ..models import (
    BatchResult,
    ErrorKind,
    ExecutionOutcome,
    FailureAnalysis,
    FailureMode,
    ImageAnalysis,
    ResultMetrics,
    ResultValidation,
    RetryAttempt,
    ToolCallProposal,
    ToolCallResult,
    ToolExecutionRecord,
    ValidationResult,
)
from ..recovery.failure_classifier import FailureClassifier
from ..recovery.retry_strategy import RetryStrategyEngine
from ..tools.executor import ToolExecutionAdapter
from ..tools.registry import ToolRegistry
from ..tools.schema import Tool
from ..validation.parameter_validator import ParameterValidator
from ..validation.result_validator import ResultValidator
from .confidence import aggregate, combine
from .deadline import Deadline, DeadlineExceeded
from .proposal import ProposalSource
from .state import LoopContext, LoopState

logger = logging.getLogger(__name__)


class Orchestrator:

    def __init__(
        self,
        registry: ToolRegistry,
        executor: ToolExecutionAdapter,
        learning_store: Optional[LearningStore] = None,
        config: Optional[PipelineConfig] = None,
        proposal_source: Optional[ProposalSource] = None,
        analyzer: Optional[GroundTruthAnalyzer] = None,
        parameter_validator: Optional[ParameterValidator] = None,
        result_validator: Optional[ResultValidator] = None,
        classifier: Optional[FailureClassifier] = None,
        retry_engine: Optional[RetryStrategyEngine] = None,
        conversations: Optional[ConversationStore] = None,
    ) -> None:

        self.config = config or PipelineConfig()
        self.registry = registry
        self.executor = executor
        self.learning_store = learning_store
        self.proposal_source = proposal_source
        self.conversations = conversations

        self.analyzer = analyzer or GroundTruthAnalyzer(self.config)
        self.parameter_validator = parameter_validator or ParameterValidator(self.config)
        self.result_validator = result_validator or ResultValidator(self.config)
        self.classifier = classifier or FailureClassifier(self.config)
        self.retry_engine = retry_engine or RetryStrategyEngine(self.config)

        self._pending: Set[asyncio.Task] = set()

    # ============================================================
    # PUBLIC ENTRY POINTS
    # ============================================================

    async def analyze(self, image_bytes: bytes) -> ImageAnalysis:
        with measure("image analysis", logger):
            return await asyncio.to_thread(self.analyzer.analyze, image_bytes)

    async def run_tool_call(
        self,
        proposal: ToolCallProposal,
        image_bytes: bytes,
        conversation_context: Optional[Sequence[Dict[str, Any]]] = None,
        max_retries: Optional[int] = None,
        analysis: Optional[ImageAnalysis] = None,
        deadline=None,
    ) -> ToolCallResult:
        """
        Run one proposal to a terminal state.

        Parameters
        ----------
        max_retries : Optional[int]
            Retries after the first attempt; defaults to the configured value.

        analysis : Optional[ImageAnalysis]
            Pre-computed analysis of `image_bytes`. Computed here when absent.

        deadline : Optional[Deadline | float]
            Overall time budget in seconds (or a shared Deadline).
        """

        ctx = LoopContext(tool_name=proposal.tool_name, proposal_id=proposal.id)
        retries = self.config.max_retries if max_retries is None else max(0, max_retries)

        logger.info("====================================================")
        logger.info(f"[ORCHESTRATOR] {proposal.tool_name} | proposal={proposal.id[:8]}")
        logger.info("====================================================")
        if conversation_context:
            logger.debug(f"[ORCHESTRATOR] Context turns: {len(conversation_context)}")

        try:
            return await self._run(ctx, proposal, image_bytes, retries, analysis, Deadline.coerce(deadline))
        except Exception as e:
            logger.exception(f"[ORCHESTRATOR] Unexpected failure in {proposal.tool_name}")
            failure = FailureAnalysis(
                FailureMode.UNKNOWN,
                ErrorKind.UNKNOWN,
                f"Internal error: {type(e).__name__}: {e}",
                recoverable=False,
            )
            return self._failed(ctx, failure, None, None, None)

    async def run_batch(
        self,
        proposals: Iterable[ToolCallProposal],
        image_bytes: bytes,
        conversation_context: Optional[Sequence[Dict[str, Any]]] = None,
        max_retries: Optional[int] = None,
        deadline=None,
    ) -> BatchResult:
        """Analyze the image once and run every proposal concurrently."""

        proposals = list(proposals)
        if not proposals:
            return BatchResult(results=(), confidence=0)

        shared_deadline = Deadline.coerce(deadline)
        try:
            analysis = await shared_deadline.guard(self.analyze(image_bytes))
        except DeadlineExceeded:
            analysis = GroundTruthAnalyzer.fallback_analysis(len(image_bytes or b""))

        results = await asyncio.gather(*(
            self.run_tool_call(
                p,
                image_bytes,
                conversation_context=conversation_context,
                max_retries=max_retries,
                analysis=analysis,
                deadline=shared_deadline,
            )
            for p in proposals
        ))

        batch = BatchResult(results=tuple(results), confidence=combine(r.confidence for r in results))
        logger.info(
            f"[ORCHESTRATOR] Batch of {len(results)} | success={batch.success} "
            f"confidence={batch.confidence}"
        )
        return batch

    async def handle_turn(
        self,
        user_message: str,
        image_bytes: bytes,
        history: Optional[Sequence[Dict[str, Any]]] = None,
        deadline=None,
        conversation_id: Optional[str] = None,
    ) -> BatchResult:
        """
        Ask the proposal source once, then run whatever it proposed.

        With a `conversation_id` and a conversation store, the stored
        messages stand in for a missing `history` and the turn is
        recorded afterwards.
        """

        remember = conversation_id is not None and self.conversations is not None
        if remember and history is None:
            history = self.conversations.history(conversation_id)

        if self.proposal_source is None:
            logger.warning("[ORCHESTRATOR] No proposal source configured")
            return BatchResult(results=(), confidence=0)

        try:
            proposals = await asyncio.to_thread(
                self.proposal_source.propose, user_message, image_bytes, history
            )
        except Exception as e:
            logger.error(f"[ORCHESTRATOR] Proposal source {self.proposal_source.name} failed: {e}")
            return BatchResult(results=(), confidence=0)

        logger.info(f"[ORCHESTRATOR] {len(proposals)} proposal(s) for: {user_message!r}")
        batch = await self.run_batch(proposals, image_bytes, conversation_context=history, deadline=deadline)

        if remember:
            self.conversations.store_turn(conversation_id, user_message, _describe_batch(batch))
            self.conversations.store_results(conversation_id, list(batch.results))

        return batch

    async def drain(self) -> None:
        """Wait for background learning-store writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def health(self) -> Dict[str, Any]:
        """Connector reachability plus store sizes, for status endpoints."""
        return {
            "connectors": self.executor.connectors.health(),
            "learning_store": self.learning_store.stats() if self.learning_store is not None else None,
            "conversations": self.conversations.stats() if self.conversations is not None else None,
            "pending_writes": self.pending_writes,
        }

    async def shutdown(self) -> None:
        """Finish background writes, then release every connector."""
        await self.drain()
        self.executor.connectors.shutdown_all()
        logger.info("[ORCHESTRATOR] Shut down")

    # ============================================================
    # LOOP
    # ============================================================

    async def _run(
        self,
        ctx: LoopContext,
        proposal: ToolCallProposal,
        image_bytes: bytes,
        max_retries: int,
        analysis: Optional[ImageAnalysis],
        deadline: Deadline,
    ) -> ToolCallResult:

        try:
            tool = self.registry.get(proposal.tool_name)
        except KeyError:
            failure = FailureAnalysis(
                FailureMode.VALIDATION,
                ErrorKind.SCHEMA,
                f"Unknown tool '{proposal.tool_name}'",
                recoverable=False,
            )
            ctx.record_attempt(RetryAttempt(1, proposal.arguments(), False, error=failure.root_cause,
                                            failure_mode=failure.mode))
            return self._failed(ctx, failure, None, None, None)

        params = proposal.arguments()
        validation: Optional[ValidationResult] = None
        result_validation: Optional[ResultValidation] = None
        start = time.monotonic()

        try:
            if analysis is None:
                analysis = await deadline.guard(self.analyze(image_bytes))

            while True:
                start = time.monotonic()

                # -------------------------------
                # VALIDATING
                # -------------------------------
                validation = await deadline.guard(asyncio.to_thread(
                    self.parameter_validator.validate, tool, params, analysis, self.learning_store
                ))
                basis = validation.normalized_parameters or params

                if not validation.is_valid:
                    failure = self.classifier.analyze_failure(
                        validation=validation, parameters=basis, tool=tool, analysis=analysis
                    )
                    self._record(ctx, basis, start, failure, error="; ".join(validation.errors))

                else:
                    # -------------------------------
                    # EXECUTING
                    # -------------------------------
                    ctx.move(LoopState.EXECUTING)
                    outcome = await deadline.guard(self.executor.execute(tool, basis, image_bytes))

                    if not outcome.success:
                        failure = self.classifier.analyze_failure(
                            execution_error=outcome.error, parameters=basis, tool=tool, analysis=analysis
                        )
                        self._record(ctx, basis, start, failure, error=outcome.error)

                    else:
                        # -------------------------------
                        # CHECKING_RESULT
                        # -------------------------------
                        ctx.move(LoopState.CHECKING_RESULT)
                        result_validation = await deadline.guard(asyncio.to_thread(
                            self.result_validator.validate_result, image_bytes, outcome.result_image, tool
                        ))

                        if (
                            result_validation.is_valid
                            and result_validation.quality_score >= self.config.min_quality_score
                        ):
                            return self._succeeded(
                                ctx, tool, basis, start, outcome, validation, result_validation, analysis
                            )

                        failure = self.classifier.analyze_failure(
                            result_validation=result_validation, parameters=basis, tool=tool, analysis=analysis
                        )
                        self._record(
                            ctx, basis, start, failure,
                            error=result_validation.reasoning,
                            quality=result_validation.quality_score,
                        )

                # -------------------------------
                # DECIDING_RETRY
                # -------------------------------
                ctx.move(LoopState.DECIDING_RETRY)

                strategy = self.retry_engine.plan_retry(
                    failure, basis, analysis, attempt_index=ctx.retries_done, max_retries=max_retries
                )

                if not strategy.should_retry:
                    return self._failed(ctx, failure, validation, result_validation, analysis)

                # -------------------------------
                # ADJUSTING
                # -------------------------------
                ctx.move(LoopState.ADJUSTING)
                logger.info(f"[ORCHESTRATOR] Retrying {tool.name.value}: {strategy.reasoning}")
                if validation is not None and validation.adjusted_parameters:
                    logger.info(
                        f"[ORCHESTRATOR] History suggests {tool.name.value} parameters "
                        f"{validation.adjusted_parameters}"
                    )

                await deadline.sleep(strategy.retry_delay)
                params = strategy.adjusted_parameters or basis
                result_validation = None
                ctx.move(LoopState.VALIDATING)

        except DeadlineExceeded:
            failure = FailureAnalysis(
                FailureMode.TIMEOUT,
                ErrorKind.TIMEOUT,
                "Deadline exceeded before the tool call completed",
                recoverable=False,
            )
            if ctx.state is not LoopState.DECIDING_RETRY and ctx.state is not LoopState.ADJUSTING:
                # the attempt in flight was never recorded
                self._record(ctx, params, start, failure, error=failure.root_cause)
            return self._failed(ctx, failure, validation, result_validation, analysis)

    # ============================================================
    # HELPERS
    # ============================================================

    @staticmethod
    def _record(
        ctx: LoopContext,
        parameters: Dict[str, Any],
        start: float,
        failure: FailureAnalysis,
        error: Optional[str] = None,
        quality: Optional[float] = None,
    ) -> None:
        ctx.record_attempt(RetryAttempt(
            attempt=ctx.attempt_number,
            parameters=dict(parameters),
            success=False,
            quality_score=quality,
            error=error,
            duration_ms=int((time.monotonic() - start) * 1000),
            failure_mode=failure.mode,
        ))
        logger.info(
            f"[ORCHESTRATOR] {ctx.tool_name} attempt {ctx.attempts[-1].attempt} failed "
            f"({failure.kind.value}): {error}"
        )

    def _succeeded(
        self,
        ctx: LoopContext,
        tool: Tool,
        parameters: Dict[str, Any],
        start: float,
        outcome: ExecutionOutcome,
        validation: ValidationResult,
        result_validation: ResultValidation,
        analysis: ImageAnalysis,
    ) -> ToolCallResult:

        ctx.record_attempt(RetryAttempt(
            attempt=ctx.attempt_number,
            parameters=dict(parameters),
            success=True,
            quality_score=result_validation.quality_score,
            duration_ms=int((time.monotonic() - start) * 1000),
        ))
        ctx.move(LoopState.DONE_SUCCESS)

        confidence = aggregate(validation.confidence, True, validation.historical_confidence)

        if confidence >= self.config.persistence_threshold:
            self._schedule_record(ToolExecutionRecord(
                tool_name=tool.name.value,
                parameters=dict(parameters),
                success=True,
                confidence=confidence,
                metrics=ResultMetrics(
                    pixels_changed=result_validation.metrics.pixels_changed,
                    percentage_changed=result_validation.metrics.percentage_changed,
                    duration_ms=outcome.duration_ms,
                    quality_score=result_validation.quality_score,
                ),
                image=analysis.snapshot(),
            ))

        logger.info(
            f"[ORCHESTRATOR] {tool.name.value} succeeded after {len(ctx.attempts)} attempt(s) "
            f"| confidence={confidence}"
        )

        return ToolCallResult(
            success=True,
            tool_name=tool.name.value,
            attempts=tuple(ctx.attempts),
            confidence=confidence,
            final_result=outcome,
            validation=validation,
            result_validation=result_validation,
            proposal_id=ctx.proposal_id,
        )

    def _failed(
        self,
        ctx: LoopContext,
        failure: FailureAnalysis,
        validation: Optional[ValidationResult],
        result_validation: Optional[ResultValidation],
        analysis: Optional[ImageAnalysis],
    ) -> ToolCallResult:

        if not ctx.state.is_terminal:
            ctx.state = LoopState.DONE_FAILURE

        if validation is not None:
            confidence = aggregate(validation.confidence, False, validation.historical_confidence)
        else:
            confidence = aggregate(0, False, None)

        logger.warning(
            f"[ORCHESTRATOR] {ctx.tool_name} failed after {len(ctx.attempts)} attempt(s): "
            f"{failure.root_cause}"
        )

        return ToolCallResult(
            success=False,
            tool_name=ctx.tool_name,
            attempts=tuple(ctx.attempts),
            confidence=confidence,
            final_error=failure,
            validation=validation,
            result_validation=result_validation,
            proposal_id=ctx.proposal_id,
        )

    def _schedule_record(self, record: ToolExecutionRecord) -> None:
        if self.learning_store is None:
            return

        task = asyncio.create_task(asyncio.to_thread(self.learning_store.record, record))
        self._pending.add(task)
        task.add_done_callback(self._on_record_done)

    def _on_record_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"[LEARNING] Background record failed: {error}")

    @property
    def pending_writes(self) -> int:
        return len(self._pending)


def _describe_batch(batch: BatchResult) -> str:
    if not batch.results:
        return "No tool calls were made."

    parts = []
    for r in batch.results:
        status = "succeeded" if r.success else f"failed ({r.final_error.root_cause})"
        parts.append(f"{r.tool_name} {status} with confidence {r.confidence:.0f}")
    return "; ".join(parts)
