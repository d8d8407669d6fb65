import pytest

from helpers import ScriptedConnector, banded_rgba, encode_png, knockout_by_tolerance, make_analysis
from pixelmind.config import PipelineConfig
from pixelmind.connectors.manager import ConnectorManager
from pixelmind.learning.store import InMemoryLearningStore
from pixelmind.models import ImageAnalysis
from pixelmind.tools.builtin import BUILTIN_TOOLS
from pixelmind.tools.executor import ToolExecutionAdapter
from pixelmind.tools.registry import ToolRegistry


@pytest.fixture
def banded_png() -> bytes:
    return encode_png(banded_rgba())


@pytest.fixture
def analysis() -> ImageAnalysis:
    return make_analysis()


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register_many(BUILTIN_TOOLS)
    return registry


@pytest.fixture
def store() -> InMemoryLearningStore:
    return InMemoryLearningStore(capacity=50)


@pytest.fixture
def local_connector() -> ScriptedConnector:
    return ScriptedConnector(knockout_by_tolerance)


@pytest.fixture
def connectors(local_connector) -> ConnectorManager:
    manager = ConnectorManager()
    manager.register("local", local_connector)
    return manager


@pytest.fixture
def adapter(registry, connectors) -> ToolExecutionAdapter:
    return ToolExecutionAdapter(registry, connectors)
