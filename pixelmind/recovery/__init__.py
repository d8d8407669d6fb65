from .failure_classifier import FailureClassifier
from .retry_strategy import RetryStrategyEngine

__all__ = ["FailureClassifier", "RetryStrategyEngine"]
