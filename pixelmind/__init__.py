from .app import PixelMindApp
from .config import PipelineConfig

__all__ = ["PixelMindApp", "PipelineConfig"]
