import asyncio
import io
import logging

import numpy as np
from PIL import Image

from pixelmind import PixelMindApp
from pixelmind.analysis import format_analysis_summary
from pixelmind.connectors.base import ExecutionConnector
from pixelmind.connectors.manager import ConnectorManager
from pixelmind.logging_config import configure_logging
from pixelmind.models import ToolCallProposal
from pixelmind.tools.names import ToolName
from pixelmind.validation import format_validation_summary

configure_logging(logging.INFO)


# --------------------------------
# Consumer infrastructure
# --------------------------------

class DemoLocalConnector(ExecutionConnector):
    """
    Minimal stand-in for a real image backend: knocks out colors by RGB
    distance and reports palettes. Other tools return the image unchanged.
    """

    def execute(self, tool, parameters, image, timeout):
        rgba = np.array(Image.open(io.BytesIO(image)).convert("RGBA"))

        if tool.name is ToolName.COLOR_KNOCKOUT:
            radius = parameters.get("tolerance", 30) * 4.4
            for color in parameters["colors"]:
                target = np.array([int(color["hex"][i:i + 2], 16) for i in (1, 3, 5)])
                distance = np.sqrt(((rgba[..., :3].astype(int) - target) ** 2).sum(axis=-1))
                rgba[distance <= radius, 3] = 0

        elif tool.name is ToolName.EXTRACT_COLOR_PALETTE:
            colors = np.unique(rgba[..., :3].reshape(-1, 3), axis=0)[: parameters["paletteSize"]]
            return {"palette": ["#%02x%02x%02x" % tuple(c) for c in colors]}

        buffer = io.BytesIO()
        Image.fromarray(rgba, "RGBA").save(buffer, format="PNG")
        return buffer.getvalue()


def make_design() -> bytes:
    """Red, blue and white horizontal bands."""
    pixels = np.zeros((120, 120, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    pixels[:50, :, :3] = (220, 30, 30)
    pixels[50:90, :, :3] = (30, 30, 200)
    pixels[90:, :, :3] = (255, 255, 255)

    buffer = io.BytesIO()
    Image.fromarray(pixels, "RGBA").save(buffer, format="PNG", dpi=(300, 300))
    return buffer.getvalue()


connectors = ConnectorManager()
connectors.register("local", DemoLocalConnector())

# --------------------------------
# Create Orchestrator
# --------------------------------

orchestrator = PixelMindApp.create(connectors=connectors)


async def main():
    image = make_design()

    analysis = await orchestrator.analyze(image)
    print("\n=== Image ===\n")
    print(format_analysis_summary(analysis))

    print("\n=== Direct tool call ===\n")

    # yellow is not in the design; the loop substitutes a real color
    result = await orchestrator.run_tool_call(
        ToolCallProposal(
            tool_name="color_knockout",
            parameters={"colors": [{"hex": "#ffff00"}], "tolerance": 20},
            reason="Remove the yellow background",
        ),
        image,
        analysis=analysis,
    )

    for attempt in result.attempts:
        print(attempt.to_dict())
    print(f"success={result.success} confidence={result.confidence}")
    if result.result_validation:
        print(format_validation_summary(result.result_validation))

    print("\n=== Conversation turn ===\n")

    batch = await orchestrator.handle_turn("Show me the palette and remove #dc1e1e", image)
    for r in batch.results:
        print(f"{r.tool_name}: success={r.success} confidence={r.confidence}")
    print(f"batch confidence={batch.confidence}")

    await orchestrator.drain()
    print("\n--- Learning store ---")
    print(orchestrator.learning_store.stats())


asyncio.run(main())
