from .conversations import ConversationContext, ConversationStore
from .similarity import image_similarity
from .store import (
    InMemoryLearningStore,
    JsonFileLearningStore,
    LearningStore,
    create_learning_store,
)

__all__ = [
    "image_similarity",
    "LearningStore",
    "InMemoryLearningStore",
    "JsonFileLearningStore",
    "create_learning_store",
    "ConversationContext",
    "ConversationStore",
]
