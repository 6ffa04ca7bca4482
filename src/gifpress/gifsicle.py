"""Wrapper around the gifsicle command-line optimizer.

Gifsicle (https://www.lcdf.org/gifsicle/):
- Info report: gifsicle --info INPUT
- Frame extraction: gifsicle --explode INPUT (writes INPUT.000, INPUT.001, ...)
- Optimization levels: -O1, -O2, -O3
- Lossy compression: --lossy=LEVEL (higher = more compression)
- Color reduction: --colors=N (reduce palette to N colors)
- Command structure: gifsicle [OPTIONS] --output=OUTPUT INPUT...

The binary is discovered once per :class:`Gifsicle` instance and the result
is cached for the lifetime of that instance. A missing binary is reported by
:meth:`Gifsicle.is_available`; only operations that actually need gifsicle
raise :class:`~gifpress.error_handling.BinaryUnavailable`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from .command_builder import OptimizationRequest, Operation, build
from .config import DEFAULT_ENGINE_CONFIG, DEFAULT_OPTIMIZER_CONFIG, EngineConfig, OptimizerConfig
from .error_handling import BinaryUnavailable
from .info_parser import AnimationMetadata, parse_info
from .process import ProcessInvocation, ProcessInvoker
from .system_tools import ToolInfo, discover_tool, probe_binary

logger = logging.getLogger(__name__)


class Gifsicle:
    """gifsicle operations on files, built on ProcessInvoker and CommandBuilder."""

    def __init__(
        self,
        binary_path: str | None = None,
        engine_config: EngineConfig | None = None,
        config: OptimizerConfig | None = None,
        invoker: ProcessInvoker | None = None,
    ) -> None:
        self.engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self.config = config or DEFAULT_OPTIMIZER_CONFIG
        self.invoker = invoker or ProcessInvoker(timeout=self.config.timeout)
        self.lossy = 0
        self._tool: ToolInfo | None = None
        if binary_path is not None:
            self._tool = probe_binary(binary_path, "gifsicle", self.invoker)

    # ------------------------------------------------------------------
    # Binary discovery
    # ------------------------------------------------------------------

    @property
    def tool(self) -> ToolInfo:
        if self._tool is None:
            self._tool = discover_tool("gifsicle", self.engine_config, self.invoker)
        return self._tool

    @property
    def binary_path(self) -> str:
        return self.tool.name

    def is_available(self) -> bool:
        return self.tool.available

    def version(self) -> str | None:
        return self.tool.version

    def set_binary_path(self, binary_path: str) -> None:
        """Switch to *binary_path*, keeping the current binary if it does not respond.

        Raises:
            BinaryUnavailable: If *binary_path* does not answer ``--version``
        """
        info = probe_binary(binary_path, "gifsicle", self.invoker)
        if not info.available:
            raise BinaryUnavailable(f"gifsicle not found at specified path: {binary_path}")
        self._tool = info

    def set_lossy(self, value: int) -> None:
        """Default lossy level for :meth:`optimize_with_quality` (0 = derive from quality)."""
        if value < 0:
            raise ValueError(f"lossy must be non-negative, got {value}")
        self.lossy = value

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(
        self,
        operation: Operation,
        inputs: Sequence = (),
        output_path: str | os.PathLike[str] | None = None,
        request: OptimizationRequest | None = None,
        cwd: Path | None = None,
        **kwargs,
    ) -> ProcessInvocation:
        """Build and run one gifsicle command.

        Non-zero exit status is returned in the invocation, not raised.

        Raises:
            BinaryUnavailable: If no gifsicle binary was found
            ProcessLaunchError: If the binary could not be started
            ProcessTimeoutError: If the call exceeded the configured timeout
        """
        self.tool.require()
        argv = build(operation, inputs, output_path, request, **kwargs)
        return self.invoker.run(self.binary_path, argv, cwd=cwd)

    def _produced(self, result: ProcessInvocation, output_path: Path) -> bool:
        return result.succeeded and Path(output_path).is_file()

    def get_info(self, input_path: Path) -> AnimationMetadata:
        """Run ``--info`` on *input_path* and parse the report.

        Raises:
            FileNotFoundError: If *input_path* does not exist
        """
        input_path = Path(input_path)
        if not input_path.exists():
            raise FileNotFoundError(f"File doesn't exist: {input_path}")

        result = self.execute(Operation.INFO, [input_path])
        if not result.succeeded:
            logger.debug(f"gifsicle --info exited with {result.exit_code} for {input_path}")
        return parse_info(result.stdout_lines, size_bytes=input_path.stat().st_size)

    def optimize(
        self,
        input_path: Path,
        output_path: Path,
        request: OptimizationRequest | None = None,
    ) -> bool:
        """Optimize *input_path* into *output_path*; True when the output was written."""
        result = self.execute(Operation.OPTIMIZE, [input_path], output_path, request)
        return self._produced(result, output_path)

    def merge(
        self,
        frames: Sequence[tuple[Path, int | None]],
        output_path: Path,
        request: OptimizationRequest | None = None,
    ) -> ProcessInvocation:
        """Recombine ``(frame path, delay)`` pairs, in order, into *output_path*."""
        return self.execute(Operation.MERGE, frames, output_path, request)

    def optimize_with_quality(
        self,
        input_path: Path,
        output_path: Path,
        quality: int = 95,
        max_colors: int = 256,
    ) -> bool:
        """Optimize with colours and lossy level derived from *quality*."""
        request = OptimizationRequest.for_quality(
            quality,
            max_colors=max_colors,
            lossy=True,
            lossy_override=self.lossy if self.lossy > 0 else None,
            optimization_level=3,
            strip_metadata=True,
            careful=True,
        )
        return self.optimize(input_path, output_path, request)

    def change_delay(self, input_path: Path, output_path: Path, delay: int) -> bool:
        """Set every frame delay to *delay* hundredths of a second."""
        if not Path(input_path).exists():
            raise FileNotFoundError(f"Input file doesn't exist: {input_path}")
        if delay < 0:
            raise ValueError("Delay cannot be negative")

        result = self.execute(Operation.DELAY, [input_path], output_path, delay=delay)
        return self._produced(result, output_path)

    def set_loop_count(self, input_path: Path, output_path: Path, loop_count: int = 0) -> bool:
        """Rewrite the loop extension; 0 loops forever."""
        result = self.execute(
            Operation.LOOP_COUNT, [input_path], output_path, loop_count=loop_count
        )
        return self._produced(result, output_path)

    def strip_metadata(self, input_path: Path, output_path: Path) -> bool:
        """Drop comments and extensions with a light -O2 pass."""
        request = OptimizationRequest(optimization_level=2, strip_metadata=True)
        return self.optimize(input_path, output_path, request)
