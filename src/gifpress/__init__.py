"""gifpress - animated GIF optimization with graceful fallbacks."""

__version__: str = "0.1.0"

from .command_builder import OptimizationRequest
from .driver import GifDriver
from .error_handling import AllStrategiesExhausted, GifPressError
from .gifsicle import Gifsicle
from .info_parser import AnimationMetadata, parse_info
from .pipeline import FallbackOrchestrator, OptimizationResult, PipelineState

__all__ = [
    "AllStrategiesExhausted",
    "AnimationMetadata",
    "FallbackOrchestrator",
    "GifDriver",
    "GifPressError",
    "Gifsicle",
    "OptimizationRequest",
    "OptimizationResult",
    "PipelineState",
    "__version__",
    "parse_info",
]
