"""Discovery of the external binaries gifpress drives.

Each tool has an ordered list of candidates: the configured path, the bare
name looked up on ``PATH`` and the usual install locations for the host OS
family. The first candidate that answers ``--version`` with exit status 0
and some output wins. A tool that answers nowhere is reported as unavailable
rather than raising, callers decide whether that is fatal.
"""

from __future__ import annotations

import logging
import platform
import re
from dataclasses import dataclass

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .error_handling import BinaryUnavailable, ProcessLaunchError
from .process import ProcessInvoker

logger = logging.getLogger(__name__)

# Probing a healthy binary takes milliseconds; a hung one must not stall discovery
PROBE_TIMEOUT = 5


@dataclass(frozen=True, slots=True)
class ToolInfo:
    """Metadata for an external binary discovered on the system."""

    name: str
    available: bool
    version: str | None = None

    def require(self) -> None:
        """Raise *BinaryUnavailable* if the tool isn't available."""
        if not self.available:
            raise BinaryUnavailable(
                f"Required tool '{self.name}' not found. "
                "Install it or set its path in EngineConfig."
            )


# ---------------------------------------------------------------------------
# Candidate tables
# ---------------------------------------------------------------------------

_CANDIDATES: dict[str, dict[str, list[str]]] = {
    "gifsicle": {
        "posix": [
            "gifsicle",
            "/usr/bin/gifsicle",
            "/usr/local/bin/gifsicle",
            "/opt/homebrew/bin/gifsicle",
        ],
        "windows": [
            "gifsicle.exe",
            "C:\\Program Files\\gifsicle\\gifsicle.exe",
            "C:\\gifsicle\\gifsicle.exe",
        ],
    },
    "imagemagick": {
        # try "magick" first (newer) then fall back to IM6 "convert"
        "posix": [
            "magick",
            "/usr/bin/magick",
            "/usr/local/bin/magick",
            "/opt/homebrew/bin/magick",
            "convert",
        ],
        "windows": [
            "magick.exe",
            "C:\\Program Files\\ImageMagick\\magick.exe",
        ],
    },
}

_VERSION_PATTERNS: dict[str, str] = {
    "gifsicle": r"Gifsicle (\S+)",
    "imagemagick": r"ImageMagick (\S+)",
}

_CONFIG_MAPPING: dict[str, str] = {
    "gifsicle": "GIFSICLE_PATH",
    "imagemagick": "IMAGEMAGICK_PATH",
}


def _os_family() -> str:
    return "windows" if platform.system() == "Windows" else "posix"


def _extract_version(output: str, pattern: str) -> str | None:
    match = re.search(pattern, output)
    if match:
        return match.group(1)
    return None


def candidate_paths(tool_key: str, engine_config: EngineConfig | None = None) -> list[str]:
    """Return the ordered, de-duplicated candidates for *tool_key*."""
    if tool_key not in _CANDIDATES:
        raise ValueError(f"Unknown tool: {tool_key}")

    engine_config = engine_config or DEFAULT_ENGINE_CONFIG
    configured = getattr(engine_config, _CONFIG_MAPPING[tool_key], None)

    ordered: list[str] = []
    for candidate in [configured, *_CANDIDATES[tool_key][_os_family()]]:
        if candidate and candidate not in ordered:
            ordered.append(candidate)
    return ordered


def probe_binary(
    binary_path: str, tool_key: str, invoker: ProcessInvoker | None = None
) -> ToolInfo:
    """Run ``<binary> --version`` and report whether it responded."""
    invoker = invoker or ProcessInvoker(timeout=PROBE_TIMEOUT)
    try:
        result = invoker.run(binary_path, ["--version"])
    except ProcessLaunchError:
        return ToolInfo(name=binary_path, available=False)
    except Exception as e:
        logger.debug(f"Probe of {binary_path} failed: {e}")
        return ToolInfo(name=binary_path, available=False)

    output = "\n".join(result.stdout_lines).strip()
    if result.exit_code != 0 or not output:
        return ToolInfo(name=binary_path, available=False)

    pattern = _VERSION_PATTERNS.get(tool_key, r"(\d+\.\d+(?:\.\d+)?)")
    return ToolInfo(
        name=binary_path, available=True, version=_extract_version(output, pattern)
    )


def discover_tool(
    tool_key: str,
    engine_config: EngineConfig | None = None,
    invoker: ProcessInvoker | None = None,
) -> ToolInfo:
    """Return *ToolInfo* for the first candidate of *tool_key* that responds.

    Args:
        tool_key: Tool identifier (gifsicle, imagemagick)
        engine_config: EngineConfig instance (uses DEFAULT_ENGINE_CONFIG if None)
        invoker: Invoker used for the ``--version`` probes

    Returns:
        ToolInfo with availability and version information
    """
    candidates = candidate_paths(tool_key, engine_config)
    for candidate in candidates:
        info = probe_binary(candidate, tool_key, invoker)
        if info.available:
            logger.debug(f"Discovered {tool_key} at {candidate} (version {info.version})")
            return info

    logger.info(f"{tool_key} not found (tried: {', '.join(candidates)})")
    return ToolInfo(name=candidates[0], available=False, version=None)


def get_available_tools(
    engine_config: EngineConfig | None = None,
    invoker: ProcessInvoker | None = None,
) -> dict[str, ToolInfo]:
    """Get availability status for all supported tools without requiring them."""
    return {
        key: discover_tool(key, engine_config, invoker) for key in _CONFIG_MAPPING
    }
