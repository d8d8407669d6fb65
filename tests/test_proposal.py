import pytest

from pixelmind.agent import RuleProposalSource


@pytest.fixture
def source():
    return RuleProposalSource()


def tools(proposals):
    return [p.tool_name for p in proposals]


def test_background_removal(source):
    (proposal,) = source.propose("Please remove the background", None)

    assert proposal.tool_name == "background_remover"
    assert proposal.parameters == {}


def test_color_knockout_collects_every_hex(source):
    (proposal,) = source.propose("Knock out #FF0000 and #fff", None)

    assert proposal.tool_name == "color_knockout"
    assert proposal.parameters == {"colors": [{"hex": "#FF0000"}, {"hex": "#fff"}], "tolerance": 30}


def test_recolor_targets_last_color(source):
    (proposal,) = source.propose("change the main color to #00ff00", None)

    assert proposal.tool_name == "recolor_image"
    assert proposal.parameters == {"colorMappings": [{"originalIndex": 0, "newColor": "#00ff00"}]}


@pytest.mark.parametrize(
    "message, factor",
    [("upscale this", 2.0), ("Upscale 4x please", 4.0), ("enlarge 1.5x", 1.5)],
)
def test_upscale_factor(source, message, factor):
    (proposal,) = source.propose(message, None)

    assert proposal.parameters == {"scaleFactor": factor}


def test_rotate_and_flip(source):
    (rotate,) = source.propose("rotate it 180 degrees", None)
    assert rotate.parameters == {"operation": {"type": "rotate", "angle": 180}}

    (flip,) = source.propose("flip vertical", None)
    assert flip.parameters == {"operation": {"type": "flip", "direction": "vertical"}}


def test_several_intents_in_one_message(source):
    proposals = source.propose("Show me a detailed palette, trim it and make a hoodie mockup", None)

    assert tools(proposals) == ["extract_color_palette", "auto_crop", "generate_mockup"]
    assert proposals[0].parameters == {"paletteSize": 36}
    assert proposals[2].parameters == {"product": "hoodie", "style": "product-only"}


def test_unrecognised_message(source):
    assert source.propose("hello there", None) == []
    assert source.name == "RuleProposalSource"
