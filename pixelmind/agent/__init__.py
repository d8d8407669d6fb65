from .confidence import aggregate, combine
from .deadline import Deadline, DeadlineExceeded
from .orchestrator import Orchestrator
from .proposal import ProposalSource, RuleProposalSource
from .state import LoopContext, LoopState

__all__ = [
    "aggregate",
    "combine",
    "Deadline",
    "DeadlineExceeded",
    "Orchestrator",
    "ProposalSource",
    "RuleProposalSource",
    "LoopContext",
    "LoopState",
]
