import base64
import logging
from typing import Any, Dict, Optional

import requests

from .base import ExecutionConnector

logger = logging.getLogger(__name__)


class RestConnector(ExecutionConnector):
    """
    Generic REST execution connector for hosted image tools.

    Responsible ONLY for transport. Posts

        {"parameters": {...}, "image": "<base64>"}

    to `{base_url}/{tool}` and expects `{"output": {...}}` back. An
    `image` entry inside the output is passed through as base64 text;
    the execution adapter decodes it.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: int = 60,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    # ============================================================
    # EXECUTION
    # ============================================================

    def execute(self, tool, parameters: Dict[str, Any], image: Optional[bytes], timeout: int = None) -> Dict[str, Any]:

        url = f"{self.base_url}/{tool.name.value}"
        effective_timeout = timeout or self.timeout_seconds

        payload: Dict[str, Any] = {"parameters": parameters}
        if image:
            payload["image"] = base64.b64encode(image).decode("ascii")

        logger.info(f"[REST] POST {url} | params={parameters}")

        try:
            response = self._session.post(
                url,
                json=payload,
                headers=self.headers,
                timeout=effective_timeout,
            )
        except requests.exceptions.Timeout:
            raise TimeoutError(f"Request to {url} timed out after {effective_timeout}s")
        except requests.exceptions.ConnectionError as e:
            raise ConnectionError(f"Network failure contacting {url}: {e}")
        except requests.exceptions.RequestException as e:
            raise RuntimeError(f"REST transport failure (POST {url}): {e}")

        if response.status_code == 429:
            raise RuntimeError(f"Rate limit exceeded (429) from {url}")

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise RuntimeError(f"Remote tool error ({response.status_code}): {e}")

        # ------------------------------------------------------------
        # Response Parsing
        # ------------------------------------------------------------

        try:
            data = response.json()
        except ValueError:
            raise RuntimeError(
                f"Remote service did not return valid JSON. Response text: {response.text[:200]}"
            )

        if not isinstance(data, dict) or "output" not in data:
            raise RuntimeError(f"Missing 'output' field in remote response: {data}")

        return data["output"]

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "type": "rest",
            "base_url": self.base_url,
            "timeout_seconds": self.timeout_seconds,
        }

    def shutdown(self) -> None:
        self._session.close()
