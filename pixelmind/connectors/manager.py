from __future__ import annotations

from typing import Dict, List, Optional
from threading import RLock
from pathlib import Path
import json
import logging

from .base import ExecutionConnector
from .rest_connector import RestConnector

logger = logging.getLogger(__name__)


class ConnectorManager:
    """
    Named execution backends, each either "active" or "inactive".

    When `storage_path` is given, REST connector metadata and statuses
    are persisted and reloaded on construction.
    """

    def __init__(self, storage_path: Optional[str] = None) -> None:
        self._connectors: Dict[str, ExecutionConnector] = {}
        self._status: Dict[str, str] = {}       # "active" | "inactive"
        self._metadata: Dict[str, dict] = {}    # persisted connector config
        self._lock = RLock()
        self._storage = Path(storage_path) if storage_path else None

        self._load_from_disk()

    # ==========================================================
    # Registration
    # ==========================================================

    def register(self, name: str, connector: ExecutionConnector) -> None:
        self._validate(name, connector)

        with self._lock:
            if name in self._connectors:
                raise ValueError(f"Connector '{name}' already registered.")

            self._connectors[name] = connector
            self._status[name] = "active"
            self._metadata[name] = self._describe(connector)
            logger.info(f"[CONNECTOR] Registered '{name}'")

    def register_or_update(self, name: str, connector: ExecutionConnector) -> str:
        self._validate(name, connector)

        with self._lock:
            outcome = "updated" if name in self._connectors else "registered"

            self._connectors[name] = connector
            self._status[name] = "active"
            self._metadata[name] = self._describe(connector)
            self._save_to_disk()

            logger.info(f"[CONNECTOR] {outcome.capitalize()} '{name}'")
            return outcome

    # ==========================================================
    # Lookup
    # ==========================================================

    def get(self, name: str) -> ExecutionConnector:
        with self._lock:
            if name not in self._connectors:
                raise KeyError(f"Connector '{name}' is not registered.")

            if self._status.get(name) != "active":
                raise RuntimeError(f"Connector '{name}' is inactive.")

            return self._connectors[name]

    def is_active(self, name: str) -> bool:
        with self._lock:
            return self._status.get(name) == "active"

    def list_connectors(self) -> List[Dict[str, str]]:
        with self._lock:
            return [
                {
                    "name": name,
                    "status": self._status.get(name, "active"),
                    "type": self._metadata.get(name, {}).get("type", "custom"),
                }
                for name in self._connectors
            ]

    # ==========================================================
    # Lifecycle
    # ==========================================================

    def deploy(self, name: str) -> None:
        self._set_status(name, "active")

    def undeploy(self, name: str) -> None:
        self._set_status(name, "inactive")

    def _set_status(self, name: str, status: str) -> None:
        with self._lock:
            if name not in self._connectors:
                raise KeyError(f"Connector '{name}' not found.")

            self._status[name] = status
            self._save_to_disk()
            logger.info(f"[CONNECTOR] '{name}' -> {status}")

    # ==========================================================
    # Observability
    # ==========================================================

    def health(self) -> Dict[str, bool]:
        status = {}

        with self._lock:
            for name, conn in self._connectors.items():
                if self._status.get(name) != "active":
                    status[name] = False
                    continue
                try:
                    status[name] = conn.health()
                except Exception as e:
                    logger.warning(f"[CONNECTOR] Health check failed for '{name}': {e}")
                    status[name] = False

        return status

    def shutdown_all(self) -> None:
        with self._lock:
            for name, conn in self._connectors.items():
                try:
                    conn.shutdown()
                except Exception as e:
                    logger.warning(f"[CONNECTOR] Shutdown failed for '{name}': {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._connectors)

    # ==========================================================
    # Persistence
    # ==========================================================

    @staticmethod
    def _describe(connector: ExecutionConnector) -> dict:
        if isinstance(connector, RestConnector):
            return connector.to_metadata()
        return {"type": "custom"}

    def _save_to_disk(self) -> None:
        if self._storage is None:
            return

        data = {
            name: {
                "metadata": self._metadata.get(name, {}),
                "status": self._status.get(name, "active"),
            }
            for name in self._connectors
        }

        try:
            with self._storage.open("w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.warning(f"[CONNECTOR] Failed to persist: {e}")

    def _load_from_disk(self) -> None:
        if self._storage is None or not self._storage.exists():
            return

        try:
            with self._storage.open() as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"[CONNECTOR] Failed to load from disk: {e}")
            return

        for name, entry in data.items():
            metadata = entry.get("metadata", {})
            connector = self._reconstruct_connector(metadata)
            if connector:
                self._connectors[name] = connector
                self._status[name] = entry.get("status", "active")
                self._metadata[name] = metadata

        logger.info(f"[CONNECTOR] Loaded {len(self._connectors)} persisted connectors")

    @staticmethod
    def _reconstruct_connector(metadata: dict) -> Optional[ExecutionConnector]:
        if metadata.get("type") == "rest" and metadata.get("base_url"):
            return RestConnector(
                base_url=metadata["base_url"],
                timeout_seconds=metadata.get("timeout_seconds", 60),
            )
        return None

    # ==========================================================
    # Validation
    # ==========================================================

    @staticmethod
    def _validate(name: str, connector: ExecutionConnector) -> None:
        if not name or not isinstance(name, str):
            raise ValueError("Connector must have a valid string name.")

        if not isinstance(connector, ExecutionConnector):
            raise TypeError("Connector must implement ExecutionConnector.")
