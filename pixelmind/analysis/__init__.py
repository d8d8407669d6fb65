from .analyzer import GroundTruthAnalyzer, format_analysis_summary
from .comparison import compare_pixels

__all__ = [
    "GroundTruthAnalyzer",
    "format_analysis_summary",
    "compare_pixels",
]
