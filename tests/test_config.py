import pytest

from pixelmind.config import AdjustableParameter, PipelineConfig, SimilarityWeights


def test_defaults_are_consistent():
    cfg = PipelineConfig()

    assert cfg.max_retries == 3
    assert cfg.min_quality_score == 70
    assert cfg.similarity_weights.total == pytest.approx(100)
    assert cfg.adjustment_for("tolerance") == AdjustableParameter("tolerance", 10, 10, 50)
    assert cfg.adjustment_for("unknown") is None


def test_adjustable_parameter_respects_bounds():
    amount = AdjustableParameter("amount", step=0.2, minimum=0.1, maximum=1.0)

    assert amount.decrease(0.2) == 0.1
    assert amount.increase(0.9) == 1.0
    assert amount.increase(0.5) == pytest.approx(0.7)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"min_quality_score": 120},
        {"persistence_threshold": 60},
        {"similarity_weights": SimilarityWeights(dimensions=50)},
        {"color_warning_distance": 80},
        {"file_size_warning_ratio": 5},
        {"learning_store_capacity": 0},
        {"min_comparable_records": 0},
        {"adjustments": {"tolerance": AdjustableParameter("tolerance", 0, 10, 50)}},
    ],
)
def test_invalid_configuration_is_rejected(kwargs):
    with pytest.raises(ValueError):
        PipelineConfig(**kwargs)
