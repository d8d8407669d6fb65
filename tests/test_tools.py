import dataclasses

from pydantic import ValidationError
import pytest

from pixelmind.tools.builtin import BUILTIN_TOOLS, COLOR_KNOCKOUT_TOOL, SMART_RESIZE_TOOL, UPSCALER_TOOL
from pixelmind.tools.builtin.rotate_flip import ROTATE_FLIP_TOOL
from pixelmind.tools.names import ToolName
from pixelmind.tools.registry import ToolRegistry
from pixelmind.tools.schema import EditIntent, OperationKind, Tool, ToolParameters


# --- Catalogue ---

def test_every_tool_name_has_a_builtin():
    assert {t.name for t in BUILTIN_TOOLS} == set(ToolName)


def test_tool_name_parse():
    assert ToolName.parse("upscaler") is ToolName.UPSCALER
    with pytest.raises(KeyError):
        ToolName.parse("sharpen")


# --- Registry ---

def test_registry_lookup_and_manifest(registry):
    assert len(registry) == len(ToolName)
    assert registry.get("color_knockout") is COLOR_KNOCKOUT_TOOL
    assert registry.get(ToolName.UPSCALER) is UPSCALER_TOOL
    assert registry.has_tool("auto_crop")
    assert not registry.has_tool("sharpen")

    manifest = registry.get_manifest()
    assert [m["name"] for m in manifest] == sorted(t.value for t in ToolName)
    assert manifest[0]["parameters"]["type"] == "object"


def test_registry_rejects_duplicates_and_unknown_lookups():
    registry = ToolRegistry()
    registry.register(COLOR_KNOCKOUT_TOOL)

    with pytest.raises(ValueError):
        registry.register(COLOR_KNOCKOUT_TOOL)
    with pytest.raises(ValueError):
        registry.register_many([UPSCALER_TOOL, COLOR_KNOCKOUT_TOOL])
    assert len(registry) == 1

    with pytest.raises(KeyError):
        registry.get("upscaler")


def test_register_or_update_tracks_contract_changes():
    registry = ToolRegistry()

    assert registry.register_or_update(UPSCALER_TOOL) == "registered"
    assert registry.register_or_update(UPSCALER_TOOL) == "unchanged"

    bumped = dataclasses.replace(UPSCALER_TOOL, version="1.1.0")
    assert registry.register_or_update(bumped) == "updated"
    assert registry.get("upscaler").version == "1.1.0"


def test_describe_uses_wire_names(registry):
    schema = registry.describe("upscaler")

    assert "scaleFactor" in schema["properties"]
    assert "scaleFactor" in schema["required"]


# --- Parameter contracts ---

def test_normalize_fills_defaults_and_camel_cases():
    wire = COLOR_KNOCKOUT_TOOL.normalize({"colors": [{"hex": "#F00"}]})

    assert wire == {
        "colors": [{"hex": "#ff0000"}],
        "tolerance": 30,
        "replaceMode": "transparency",
        "feather": 0,
        "antiAliasing": True,
    }


def test_unknown_and_out_of_range_parameters_are_rejected():
    with pytest.raises(ValidationError):
        COLOR_KNOCKOUT_TOOL.parse({"colors": [{"hex": "#fff"}], "strength": 3})

    with pytest.raises(ValidationError):
        COLOR_KNOCKOUT_TOOL.parse({"colors": [{"hex": "#fff"}], "tolerance": 150})

    with pytest.raises(ValidationError):
        COLOR_KNOCKOUT_TOOL.parse({"colors": []})


def test_defaults_lists_optional_wire_parameters():
    defaults = COLOR_KNOCKOUT_TOOL.defaults()

    assert defaults["tolerance"] == 30
    assert defaults["antiAliasing"] is True
    assert "colors" not in defaults


def test_rotate_flip_is_a_tagged_union():
    assert ROTATE_FLIP_TOOL.normalize({"operation": {"type": "flip", "direction": "vertical"}}) == {
        "operation": {"type": "flip", "direction": "vertical"},
    }

    with pytest.raises(ValidationError):
        ROTATE_FLIP_TOOL.parse({"operation": {"type": "rotate", "angle": 45}})


def test_smart_resize_needs_a_dimension():
    with pytest.raises(ValidationError):
        SMART_RESIZE_TOOL.parse({"unit": "px"})

    assert SMART_RESIZE_TOOL.normalize({"width": 800})["width"] == 800


def test_tool_contract_checks():
    class Params(ToolParameters):
        pass

    with pytest.raises(TypeError):
        Tool(name="color_knockout", description="", connector_name="local",
             params_model=Params, intent=EditIntent(OperationKind.INFO_ONLY))

    with pytest.raises(ValueError):
        Tool(name=ToolName.AUTO_CROP, description="", connector_name="local",
             params_model=Params, intent=EditIntent(OperationKind.INFO_ONLY), timeout_seconds=0)


def test_contract_hash_is_stable_and_version_sensitive():
    assert UPSCALER_TOOL.contract_hash == UPSCALER_TOOL.contract_hash
    assert dataclasses.replace(UPSCALER_TOOL, version="2.0.0").contract_hash != UPSCALER_TOOL.contract_hash
