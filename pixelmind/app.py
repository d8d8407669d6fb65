from typing import Optional

from .agent.orchestrator import Orchestrator
from .agent.proposal import ProposalSource, RuleProposalSource
from .config import PipelineConfig
from .connectors.manager import ConnectorManager
from .learning.conversations import ConversationStore
from .learning.store import LearningStore, create_learning_store
from .tools.builtin import BUILTIN_TOOLS
from .tools.executor import ToolExecutionAdapter
from .tools.registry import ToolRegistry


class PixelMindApp:
    """
    Top-level facade for constructing a PixelMind Orchestrator.

    This class is the **public entry point** of the package. It hides the
    wiring between validators, the execution adapter, the retry engine
    and the learning store, while keeping execution infrastructure
    (connectors) consumer-provided.

    Design Principles
    -----------------
    • Connectors are always provided by the caller
    • The built-in tool catalogue is registered unless a registry is given
    • The learning-store backend is selected once, here
    • No global state
    """

    @staticmethod
    def create(
        *,
        connectors: ConnectorManager,
        registry: Optional[ToolRegistry] = None,
        config: Optional[PipelineConfig] = None,
        learning_store: Optional[LearningStore] = None,
        proposal_source: Optional[ProposalSource] = None,
        conversations: Optional[ConversationStore] = None,
    ) -> Orchestrator:
        """
        Construct and return a fully wired Orchestrator.

        Parameters
        ----------
        connectors : ConnectorManager
            Execution backends, keyed by the `connector_name` each tool
            declares ("local", "remote" for the built-in tools).

        registry : Optional[ToolRegistry]
            Tool definitions. Defaults to a registry holding every
            built-in tool.

        config : Optional[PipelineConfig]
            Thresholds and penalties. Defaults to the stock configuration.

        learning_store : Optional[LearningStore]
            History backend. Defaults to `create_learning_store(config)`.

        proposal_source : Optional[ProposalSource]
            Used by `handle_turn`. Defaults to the keyword-based
            RuleProposalSource.

        conversations : Optional[ConversationStore]
            Per-conversation messages and results for `handle_turn`.
            Defaults to an empty in-memory store.
        """

        config = config or PipelineConfig()

        if registry is None:
            registry = ToolRegistry()
            registry.register_many(BUILTIN_TOOLS)

        if learning_store is None:
            learning_store = create_learning_store(config)

        executor = ToolExecutionAdapter(registry, connectors)

        return Orchestrator(
            registry=registry,
            executor=executor,
            learning_store=learning_store,
            config=config,
            proposal_source=proposal_source or RuleProposalSource(),
            conversations=conversations if conversations is not None else ConversationStore(),
        )
