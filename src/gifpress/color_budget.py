"""Quality-to-palette planning.

Maps a 0-100 quality level to the colour budget and lossy level passed to
gifsicle::

    color_budget = clamp(round_half_up(max_colors * quality / 100), 16, max_colors)
    lossy_value  = override if given, else 100 - quality (None when lossless)

The budget is additionally capped at the number of colours the image already
uses, since asking for more colours than exist buys nothing. Integer
arithmetic keeps the result identical on every platform.
"""

from typing import NamedTuple

MIN_COLORS = 16
MAX_COLORS = 256


class ColorBudget(NamedTuple):
    color_budget: int
    lossy_value: int | None


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def cap(color_budget: int, current_color_count: int) -> int:
    """Limit an already planned *color_budget* to the colours the image uses.

    The result never drops below the 16-colour floor.
    """
    return min(int(color_budget), max(int(current_color_count), MIN_COLORS))


def plan(
    quality_level: int,
    current_color_count: int = MAX_COLORS,
    max_colors: int = MAX_COLORS,
    lossy: bool = True,
    lossy_override: int | None = None,
) -> ColorBudget:
    """Compute the colour budget and lossy value for *quality_level*.

    Pure and total: out-of-range arguments are clamped into their valid
    ranges instead of raising.

    Args:
        quality_level: Requested quality, 0 (smallest) to 100 (best)
        current_color_count: Colours the source image currently uses
        max_colors: Upper bound of the palette (16-256)
        lossy: Whether lossy compression is wanted at all
        lossy_override: Explicit lossy value that wins over the derived one

    Returns:
        ColorBudget(color_budget, lossy_value)
    """
    quality = _clamp(int(quality_level), 0, 100)
    max_colors = _clamp(int(max_colors), MIN_COLORS, MAX_COLORS)

    # round half up: (a + 50) // 100 == round(a / 100) for non-negative a
    budget = _clamp((max_colors * quality + 50) // 100, MIN_COLORS, max_colors)

    budget = cap(budget, current_color_count)

    if lossy_override is not None:
        lossy_value = _clamp(int(lossy_override), 0, 100)
    elif lossy:
        lossy_value = 100 - quality
    else:
        lossy_value = None

    return ColorBudget(color_budget=budget, lossy_value=lossy_value)
