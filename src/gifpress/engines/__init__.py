from .base import RasterEngine, RasterImage
from .imagemagick import ImageMagickEngine
from .pillow import PillowEngine

__all__ = [
    "RasterEngine",
    "RasterImage",
    "PillowEngine",
    "ImageMagickEngine",
    "get_engine",
]

_ENGINES: dict[str, type[RasterEngine]] = {
    "pillow": PillowEngine,
    "imagemagick": ImageMagickEngine,
}


def get_engine(name: str = "pillow", **kwargs) -> RasterEngine:
    """Instantiate the raster engine registered under *name*."""
    try:
        engine_cls = _ENGINES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown engine: {name} (choose from {', '.join(sorted(_ENGINES))})"
        ) from None
    return engine_cls(**kwargs)
