from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from threading import RLock
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple, Union
import json
import logging
import os

from ..config import PipelineConfig, SimilarityWeights
from ..models import ImageAnalysis, ImageSnapshot, ToolExecutionRecord
from .similarity import image_similarity

logger = logging.getLogger(__name__)

PERSISTENCE_THRESHOLD = 70.0


class LearningStore(ABC):
    """
    Append-only memory of successful, high-confidence tool executions.

    Capability interface with interchangeable backends. Every operation
    degrades to a no-op or an empty result instead of raising when the
    backing storage misbehaves.
    """

    def __init__(
        self,
        weights: Optional[SimilarityWeights] = None,
        threshold: float = PERSISTENCE_THRESHOLD,
    ) -> None:
        self._weights = weights or SimilarityWeights()
        self._threshold = max(PERSISTENCE_THRESHOLD, threshold)
        self._lock = RLock()

    # ------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------

    @abstractmethod
    def _append(self, record: ToolExecutionRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def _snapshot(self) -> List[ToolExecutionRecord]:
        """Records, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def _replace(self, records: Iterable[ToolExecutionRecord]) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------

    def accepts(self, record: ToolExecutionRecord) -> bool:
        return record.success and record.confidence >= self._threshold

    def record(self, record: ToolExecutionRecord) -> bool:
        """
        Store a record. Returns False (no-op) unless the record is a
        success with confidence at or above the persistence threshold.
        """
        if not self.accepts(record):
            logger.debug(
                f"[LEARNING] Rejected record for {record.tool_name} "
                f"(success={record.success}, confidence={record.confidence})"
            )
            return False

        with self._lock:
            self._append(record)

        logger.info(
            f"[LEARNING] Recorded {record.tool_name} (confidence={record.confidence:.0f})"
        )
        return True

    def find_similar_scored(
        self,
        tool_name: str,
        analysis: Union[ImageAnalysis, ImageSnapshot],
        limit: int = 5,
        min_similarity: float = 0.0,
    ) -> List[Tuple[ToolExecutionRecord, float]]:

        target = analysis.snapshot() if isinstance(analysis, ImageAnalysis) else analysis
        name = getattr(tool_name, "value", tool_name)

        with self._lock:
            candidates = [r for r in self._snapshot() if r.tool_name == name]

        scored = [
            (r, image_similarity(target, r.image, self._weights))
            for r in candidates
            if self.accepts(r)
        ]
        scored = [pair for pair in scored if pair[1] >= min_similarity]
        scored.sort(key=lambda pair: (pair[1], pair[0].timestamp), reverse=True)

        return scored[:max(0, limit)]

    def find_similar(
        self,
        tool_name: str,
        analysis: Union[ImageAnalysis, ImageSnapshot],
        limit: int = 5,
        min_similarity: float = 0.0,
    ) -> List[ToolExecutionRecord]:
        """Records for `tool_name`, ordered by descending similarity."""
        return [
            record
            for record, _ in self.find_similar_scored(tool_name, analysis, limit, min_similarity)
        ]

    def prune(self, keep_most_recent: int) -> int:
        """Drop all but the N most recently written records. Returns the number removed."""
        keep = max(0, keep_most_recent)

        with self._lock:
            records = self._snapshot()
            removed = max(0, len(records) - keep)
            if removed:
                self._replace(records[-keep:] if keep else [])

        if removed:
            logger.info(f"[LEARNING] Pruned {removed} records (kept {keep})")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._replace([])

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            records = self._snapshot()

        per_tool: Dict[str, int] = {}
        for r in records:
            per_tool[r.tool_name] = per_tool.get(r.tool_name, 0) + 1

        return {
            "backend": self.backend,
            "records": len(records),
            "per_tool": per_tool,
        }

    @property
    def backend(self) -> str:
        return self.__class__.__name__

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshot())


class InMemoryLearningStore(LearningStore):
    """Fixed-capacity ring buffer; the oldest records fall off first."""

    def __init__(
        self,
        capacity: int = 1000,
        weights: Optional[SimilarityWeights] = None,
        threshold: float = PERSISTENCE_THRESHOLD,
    ) -> None:
        super().__init__(weights, threshold)
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._records: Deque[ToolExecutionRecord] = deque(maxlen=capacity)

    def _append(self, record: ToolExecutionRecord) -> None:
        self._records.append(record)

    def _snapshot(self) -> List[ToolExecutionRecord]:
        return list(self._records)

    def _replace(self, records: Iterable[ToolExecutionRecord]) -> None:
        self._records.clear()
        self._records.extend(records)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0


class JsonFileLearningStore(InMemoryLearningStore):
    """
    Ring buffer mirrored to a JSON file.

    The file is read once at construction and rewritten after every
    change. I/O failures are logged and leave the in-memory copy intact.
    """

    def __init__(
        self,
        path: str,
        capacity: int = 1000,
        weights: Optional[SimilarityWeights] = None,
        threshold: float = PERSISTENCE_THRESHOLD,
    ) -> None:
        super().__init__(capacity, weights, threshold)
        self._path = Path(path)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _append(self, record: ToolExecutionRecord) -> None:
        super()._append(record)
        self._save()

    def _replace(self, records: Iterable[ToolExecutionRecord]) -> None:
        super()._replace(records)
        self._save()

    # ------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------

    def _save(self) -> None:
        data = {"records": [r.to_dict() for r in self._records]}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")

        try:
            with tmp.open("w") as f:
                json.dump(data, f)
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"[LEARNING] Failed to persist store to {self._path}: {e}")

    def _load(self) -> None:
        if not self._path.exists():
            return

        try:
            with self._path.open() as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"[LEARNING] Failed to load store from {self._path}: {e}")
            return

        if not isinstance(data, dict) or not isinstance(data.get("records", []), list):
            logger.warning(f"[LEARNING] Ignoring store file {self._path}: unexpected layout")
            return

        loaded = 0
        for entry in data.get("records", []):
            if not isinstance(entry, dict):
                logger.warning(f"[LEARNING] Skipping malformed record: {entry!r}")
                continue
            try:
                record = ToolExecutionRecord.from_dict(entry)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"[LEARNING] Skipping malformed record: {e}")
                continue
            if self.accepts(record):
                self._records.append(record)
                loaded += 1

        logger.info(f"[LEARNING] Loaded {loaded} records from {self._path}")


def create_learning_store(config: Optional[PipelineConfig] = None) -> LearningStore:
    """
    Select the learning-store backend once.

    A configured, writable path yields a JSON-file store; otherwise the
    process runs with an in-memory store and no cross-restart history.
    """
    config = config or PipelineConfig()
    path = config.learning_store_path

    if path:
        directory = Path(path).resolve().parent
        if directory.is_dir() and os.access(directory, os.W_OK):
            logger.info(f"[LEARNING] Using JSON file store at {path}")
            return JsonFileLearningStore(
                path,
                capacity=config.learning_store_capacity,
                weights=config.similarity_weights,
                threshold=config.persistence_threshold,
            )
        logger.warning(f"[LEARNING] Store path {path} is not writable; falling back to memory")

    return InMemoryLearningStore(
        capacity=config.learning_store_capacity,
        weights=config.similarity_weights,
        threshold=config.persistence_threshold,
    )
