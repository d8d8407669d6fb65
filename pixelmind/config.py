from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional


@dataclass(frozen=True)
class SimilarityWeights:
    """
    Relative importance of each image feature when comparing two images
    for the learning store. Weights are percentages and must sum to 100.
    """

    dimensions: float = 30.0
    aspect_ratio: float = 10.0
    transparency: float = 15.0
    unique_colors: float = 15.0
    sharpness: float = 15.0
    print_ready: float = 15.0

    @property
    def total(self) -> float:
        return (
            self.dimensions
            + self.aspect_ratio
            + self.transparency
            + self.unique_colors
            + self.sharpness
            + self.print_ready
        )


@dataclass(frozen=True)
class AdjustableParameter:
    """
    A numeric "strength" knob the retry engine may move one step at a time.
    """

    name: str
    step: float
    minimum: float
    maximum: float

    def decrease(self, value: float) -> float:
        return max(self.minimum, value - self.step)

    def increase(self, value: float) -> float:
        return min(self.maximum, value + self.step)


class PipelineConfig:
    """
    Central configuration object for the validation / execution / retry
    pipeline.

    Every threshold and penalty that shapes a decision lives here so it
    can be tuned against labelled data instead of being baked into the
    components.
    """

    def __init__(
        self,
        *,
        # -- loop ---------------------------------------------------------
        max_retries: int = 3,
        min_quality_score: float = 70.0,
        persistence_threshold: float = 70.0,
        neutral_historical_confidence: float = 75.0,
        # -- analyzer -----------------------------------------------------
        palette_size: int = 9,
        min_print_dpi: float = 300.0,
        default_dpi: float = 72.0,
        min_print_inches: float = 2.0,
        min_print_sharpness: float = 40.0,
        blurry_threshold: float = 50.0,
        noise_samples: int = 20,
        noise_region_size: int = 16,
        noise_seed: int = 7,
        # -- parameter validator ------------------------------------------
        color_error_distance: float = 50.0,
        color_warning_distance: float = 30.0,
        rare_color_percentage: float = 1.0,
        noisy_threshold: float = 30.0,
        clean_threshold: float = 15.0,
        min_tolerance_for_noise: float = 25.0,
        max_tolerance_for_clean: float = 40.0,
        max_upscale_megapixels: float = 16.0,
        schema_error_confidence: float = 0.0,
        ground_truth_error_penalty: float = 60.0,
        ground_truth_warning_penalty: float = 15.0,
        historical_outlier_penalty: float = 20.0,
        min_comparable_records: int = 3,
        min_comparable_similarity: float = 60.0,
        historical_limit: int = 10,
        # -- result validator ---------------------------------------------
        change_threshold: float = 10.0,
        significant_change_percentage: float = 1.0,
        over_change_percentage: float = 95.0,
        under_change_percentage: float = 1.0,
        file_size_explosion_ratio: float = 3.0,
        file_size_warning_ratio: float = 2.0,
        file_size_explosion_penalty: float = 40.0,
        file_size_warning_penalty: float = 10.0,
        dimension_mismatch_penalty: float = 30.0,
        corruption_penalty: float = 50.0,
        operation_check_penalty: float = 30.0,
        min_upscale_ratio: float = 1.1,
        max_dimension_drift: float = 0.05,
        # -- retry --------------------------------------------------------
        rate_limit_delay: float = 5.0,
        backoff_base_delay: float = 1.0,
        adjustment_delay: float = 0.0,
        noisy_tolerance_target: float = 35.0,
        clean_tolerance_target: float = 25.0,
        top_color_substitutes: int = 3,
        adjustments: Optional[Dict[str, AdjustableParameter]] = None,
        recoverable_whitelist: FrozenSet[str] = frozenset(),
        # -- learning store -----------------------------------------------
        similarity_weights: Optional[SimilarityWeights] = None,
        learning_store_path: Optional[str] = None,
        learning_store_capacity: int = 1000,
    ):
        self.max_retries = max_retries
        self.min_quality_score = min_quality_score
        self.persistence_threshold = persistence_threshold
        self.neutral_historical_confidence = neutral_historical_confidence

        self.palette_size = palette_size
        self.min_print_dpi = min_print_dpi
        self.default_dpi = default_dpi
        self.min_print_inches = min_print_inches
        self.min_print_sharpness = min_print_sharpness
        self.blurry_threshold = blurry_threshold
        self.noise_samples = noise_samples
        self.noise_region_size = noise_region_size
        self.noise_seed = noise_seed

        self.color_error_distance = color_error_distance
        self.color_warning_distance = color_warning_distance
        self.rare_color_percentage = rare_color_percentage
        self.noisy_threshold = noisy_threshold
        self.clean_threshold = clean_threshold
        self.min_tolerance_for_noise = min_tolerance_for_noise
        self.max_tolerance_for_clean = max_tolerance_for_clean
        self.max_upscale_megapixels = max_upscale_megapixels
        self.schema_error_confidence = schema_error_confidence
        self.ground_truth_error_penalty = ground_truth_error_penalty
        self.ground_truth_warning_penalty = ground_truth_warning_penalty
        self.historical_outlier_penalty = historical_outlier_penalty
        self.min_comparable_records = min_comparable_records
        self.min_comparable_similarity = min_comparable_similarity
        self.historical_limit = historical_limit

        self.change_threshold = change_threshold
        self.significant_change_percentage = significant_change_percentage
        self.over_change_percentage = over_change_percentage
        self.under_change_percentage = under_change_percentage
        self.file_size_explosion_ratio = file_size_explosion_ratio
        self.file_size_warning_ratio = file_size_warning_ratio
        self.file_size_explosion_penalty = file_size_explosion_penalty
        self.file_size_warning_penalty = file_size_warning_penalty
        self.dimension_mismatch_penalty = dimension_mismatch_penalty
        self.corruption_penalty = corruption_penalty
        self.operation_check_penalty = operation_check_penalty
        self.min_upscale_ratio = min_upscale_ratio
        self.max_dimension_drift = max_dimension_drift

        self.rate_limit_delay = rate_limit_delay
        self.backoff_base_delay = backoff_base_delay
        self.adjustment_delay = adjustment_delay
        self.noisy_tolerance_target = noisy_tolerance_target
        self.clean_tolerance_target = clean_tolerance_target
        self.top_color_substitutes = top_color_substitutes
        self.adjustments = adjustments or {
            "tolerance": AdjustableParameter("tolerance", step=10, minimum=10, maximum=50),
            "amount": AdjustableParameter("amount", step=0.2, minimum=0.1, maximum=1.0),
        }
        self.recoverable_whitelist = frozenset(recoverable_whitelist)

        self.similarity_weights = similarity_weights or SimilarityWeights()
        self.learning_store_path = learning_store_path
        self.learning_store_capacity = learning_store_capacity

        self._validate()

    def adjustment_for(self, parameter: str) -> Optional[AdjustableParameter]:
        return self.adjustments.get(parameter)

    def _validate(self):
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        for name in ("min_quality_score", "persistence_threshold", "neutral_historical_confidence"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be within [0, 100], got {value}")

        if self.persistence_threshold < 70:
            raise ValueError("persistence_threshold cannot be lower than 70")

        if abs(self.similarity_weights.total - 100.0) > 1e-6:
            raise ValueError(
                f"Similarity weights must sum to 100, got {self.similarity_weights.total}"
            )

        if self.color_warning_distance > self.color_error_distance:
            raise ValueError("color_warning_distance must not exceed color_error_distance")

        if self.file_size_warning_ratio > self.file_size_explosion_ratio:
            raise ValueError("file_size_warning_ratio must not exceed file_size_explosion_ratio")

        if self.noise_samples <= 0 or self.noise_region_size <= 0:
            raise ValueError("Noise sampling requires positive sample count and region size")

        if self.learning_store_capacity <= 0:
            raise ValueError("learning_store_capacity must be positive")

        if self.min_comparable_records < 1:
            raise ValueError("min_comparable_records must be at least 1")

        for key, adj in self.adjustments.items():
            if adj.step <= 0 or adj.minimum > adj.maximum:
                raise ValueError(f"Invalid adjustment range for '{key}'")
