import dataclasses

import pytest

from helpers import make_analysis
from pixelmind.config import SimilarityWeights
from pixelmind.learning.similarity import feature_scores, image_similarity


@pytest.fixture
def snapshot():
    return make_analysis().snapshot()


def test_identical_images(snapshot):
    assert image_similarity(snapshot, snapshot) == 100.0
    assert set(feature_scores(snapshot, snapshot).values()) == {100.0}


def test_each_feature_contributes_its_weight(snapshot):
    transparent = dataclasses.replace(snapshot, has_transparency=True)
    assert image_similarity(snapshot, transparent) == 85.0

    other_ratio = dataclasses.replace(snapshot, aspect_ratio="16:9")
    assert image_similarity(snapshot, other_ratio) == 90.0


def test_dimension_and_color_closeness(snapshot):
    doubled = dataclasses.replace(snapshot, width=200, height=200)
    scores = feature_scores(snapshot, doubled)
    assert scores["dimensions"] == 50.0

    busier = dataclasses.replace(snapshot, unique_color_count=6)
    assert feature_scores(snapshot, busier)["unique_colors"] == 50.0

    blurrier = dataclasses.replace(snapshot, sharpness_score=20.0)
    assert feature_scores(snapshot, blurrier)["sharpness"] == 60.0


def test_similarity_is_symmetric(snapshot):
    other = dataclasses.replace(snapshot, width=640, unique_color_count=900, is_print_ready=True)
    assert image_similarity(snapshot, other) == image_similarity(other, snapshot)


def test_custom_weights(snapshot):
    weights = SimilarityWeights(
        dimensions=0, aspect_ratio=0, transparency=100, unique_colors=0, sharpness=0, print_ready=0
    )
    transparent = dataclasses.replace(snapshot, has_transparency=True)

    assert image_similarity(snapshot, transparent, weights) == 0.0
