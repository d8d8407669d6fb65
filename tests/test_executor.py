import base64
import time

import pytest

from helpers import ScriptedConnector
from pixelmind.connectors.manager import ConnectorManager
from pixelmind.tools.builtin import COLOR_KNOCKOUT_TOOL, EXTRACT_COLOR_PALETTE_TOOL
from pixelmind.tools.executor import ToolExecutionAdapter
from pixelmind.tools.schema import Tool

KNOCKOUT_PARAMS = {"colors": [{"hex": "#ff0000"}], "tolerance": 30}


def adapter_with(registry, handler, name="local"):
    connectors = ConnectorManager()
    connector = ScriptedConnector(handler)
    connectors.register(name, connector)
    return ToolExecutionAdapter(registry, connectors), connector


@pytest.mark.asyncio
async def test_raw_bytes_become_the_result_image(registry, banded_png):
    adapter, connector = adapter_with(registry, lambda tool, params, image: image)

    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)

    assert outcome.success
    assert outcome.result_image == banded_png
    assert outcome.output is None
    assert outcome.duration_ms >= 0
    assert connector.calls == [("color_knockout", KNOCKOUT_PARAMS)]


@pytest.mark.asyncio
async def test_dict_output_with_base64_image(registry, banded_png):
    encoded = base64.b64encode(banded_png).decode()
    adapter, _ = adapter_with(registry, lambda tool, params, image: {"image": encoded, "pixels": 3})

    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)

    assert outcome.success
    assert outcome.result_image == banded_png
    assert outcome.output == {"pixels": 3}


@pytest.mark.asyncio
async def test_info_output_has_no_image(registry, banded_png):
    adapter, _ = adapter_with(registry, lambda tool, params, image: {"palette": ["#ff0000"]})

    outcome = await adapter.execute(EXTRACT_COLOR_PALETTE_TOOL, {"paletteSize": 9}, banded_png)

    assert outcome.success
    assert outcome.has_image is False
    assert outcome.output == {"palette": ["#ff0000"]}


@pytest.mark.asyncio
async def test_exceptions_are_normalised(registry, banded_png):
    def boom(tool, params, image):
        raise RuntimeError("Rate limit exceeded (429)")

    adapter, _ = adapter_with(registry, boom)
    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)

    assert not outcome.success
    assert outcome.error == "Rate limit exceeded (429)"


@pytest.mark.asyncio
async def test_exception_class_is_kept_in_message(registry, banded_png):
    def refuse(tool, params, image):
        raise ConnectionError("ECONNREFUSED")

    adapter, _ = adapter_with(registry, refuse)
    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)

    assert outcome.error == "ConnectionError: ECONNREFUSED"


@pytest.mark.asyncio
async def test_error_payload_is_a_failure(registry, banded_png):
    adapter, _ = adapter_with(registry, lambda tool, params, image: {"error": "out of memory"})

    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)

    assert not outcome.success
    assert outcome.error == "out of memory"


@pytest.mark.asyncio
async def test_invalid_output_type(registry, banded_png):
    adapter, _ = adapter_with(registry, lambda tool, params, image: 42)

    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)

    assert not outcome.success
    assert outcome.error.startswith("Invalid output")


@pytest.mark.asyncio
async def test_timeout_is_reported(registry, banded_png):
    def slow(tool, params, image):
        time.sleep(1.5)
        return image

    adapter, _ = adapter_with(registry, slow)
    quick = Tool(
        name=COLOR_KNOCKOUT_TOOL.name,
        description=COLOR_KNOCKOUT_TOOL.description,
        connector_name="local",
        params_model=COLOR_KNOCKOUT_TOOL.params_model,
        intent=COLOR_KNOCKOUT_TOOL.intent,
        timeout_seconds=1,
    )

    outcome = await adapter.execute(quick, KNOCKOUT_PARAMS, banded_png)

    assert not outcome.success
    assert outcome.error == "Execution timed out after 1s"


@pytest.mark.asyncio
async def test_missing_or_inactive_connector(registry, banded_png):
    adapter, _ = adapter_with(registry, lambda tool, params, image: image, name="other")

    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)
    assert not outcome.success
    assert "Connector unavailable" in outcome.error

    adapter.connectors.register("local", ScriptedConnector(lambda tool, params, image: image))
    adapter.connectors.undeploy("local")
    outcome = await adapter.execute(COLOR_KNOCKOUT_TOOL, KNOCKOUT_PARAMS, banded_png)
    assert "inactive" in outcome.error


@pytest.mark.asyncio
async def test_invoke_by_name(registry, banded_png):
    adapter, _ = adapter_with(registry, lambda tool, params, image: image)

    assert (await adapter.invoke("color_knockout", KNOCKOUT_PARAMS, banded_png)).success

    unknown = await adapter.invoke("sharpen", {}, banded_png)
    assert not unknown.success
    assert "sharpen" in unknown.error
