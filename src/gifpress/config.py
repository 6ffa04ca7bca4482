"""Configuration settings for gifpress."""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class EngineConfig:
    """Configuration for external binary paths with environment variable overrides."""

    # Path to the gifsicle executable.
    # On macOS/Linux, "gifsicle" should work if installed via package manager
    # On Windows, you might need to provide the full path to the .exe
    # e.g., "C:/Program Files/gifsicle/gifsicle.exe"
    # Override with: GIFPRESS_GIFSICLE_PATH
    GIFSICLE_PATH: str = "gifsicle"

    # Path to ImageMagick executable (magick or convert).
    # Override with: GIFPRESS_IMAGEMAGICK_PATH
    IMAGEMAGICK_PATH: str = "magick"

    def __post_init__(self) -> None:
        """Apply environment variable overrides after initialization."""
        env_overrides = {
            "GIFSICLE_PATH": "GIFPRESS_GIFSICLE_PATH",
            "IMAGEMAGICK_PATH": "GIFPRESS_IMAGEMAGICK_PATH",
        }

        for attr_name, env_var_name in env_overrides.items():
            env_value = os.getenv(env_var_name)
            if env_value:
                setattr(self, attr_name, env_value)


@dataclass
class OptimizerConfig:
    """Configuration for the animated GIF optimization pipeline."""

    # Hard timeout (seconds) for a single external process call, 0 disables.
    # Override with: GIFPRESS_RUN_TIMEOUT
    RUN_TIMEOUT: float = 30.0

    # Quality used when the caller does not pass one (0-100)
    DEFAULT_QUALITY: int = 95

    # Upper bound of the palette (16-256)
    MAX_COLORS: int = 256

    # gifsicle -O level (1-3)
    OPTIMIZATION_LEVEL: int = 3

    # Derive a --lossy value from quality when no explicit value is given
    LOSSY: bool = True

    # Drop comments and application extensions from the output
    STRIP_METADATA: bool = True

    # Emit --careful for maximum decoder compatibility
    CAREFUL: bool = True

    # Root for scratch files and directories (None = system temp dir)
    # Override with: GIFPRESS_TMP_DIR
    TEMP_ROOT: Path | None = None
    TEMP_PREFIX: str = "gifpress-"

    def __post_init__(self) -> None:
        env_timeout = os.getenv("GIFPRESS_RUN_TIMEOUT")
        if env_timeout:
            self.RUN_TIMEOUT = float(env_timeout)

        env_tmp = os.getenv("GIFPRESS_TMP_DIR")
        if env_tmp:
            self.TEMP_ROOT = Path(env_tmp)

        if self.RUN_TIMEOUT < 0:
            raise ValueError(f"RUN_TIMEOUT must be non-negative, got {self.RUN_TIMEOUT}")

        if not 0 <= self.DEFAULT_QUALITY <= 100:
            raise ValueError(
                f"DEFAULT_QUALITY must be between 0 and 100, got {self.DEFAULT_QUALITY}"
            )

        if not 16 <= self.MAX_COLORS <= 256:
            raise ValueError(f"MAX_COLORS must be between 16 and 256, got {self.MAX_COLORS}")

        if self.OPTIMIZATION_LEVEL not in (1, 2, 3):
            raise ValueError(
                f"OPTIMIZATION_LEVEL must be 1, 2 or 3, got {self.OPTIMIZATION_LEVEL}"
            )

        if not self.TEMP_PREFIX or os.sep in self.TEMP_PREFIX:
            raise ValueError(f"Invalid TEMP_PREFIX: {self.TEMP_PREFIX!r}")

    @property
    def timeout(self) -> float | None:
        """Timeout in seconds for subprocess calls, *None* when disabled."""
        return self.RUN_TIMEOUT or None


# Default configuration instances
DEFAULT_ENGINE_CONFIG = EngineConfig()
DEFAULT_OPTIMIZER_CONFIG = OptimizerConfig()
