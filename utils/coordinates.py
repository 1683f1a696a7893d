"""
Coordinate normalization for model-issued pointer actions.

The model emits coordinates on a 0-1000 grid relative to the viewport, but
some prompt versions produce raw pixels instead. Anything up to 1000 is
treated as normalized; larger values are taken as pixels. The viewport is
wider than 1000px, so the threshold is unambiguous for the x axis and only
affects y values that would be off-screen anyway.
"""
import math
from numbers import Real
from typing import Any, Optional

from error_handling import InvalidCoordinateError

NORMALIZED_SCALE = 1000


def to_number(value: Any, fallback: Optional[float] = None) -> float:
    """
    Coerce a model-supplied value to a finite float.

    Accepts ints, floats and numeric strings. Booleans are rejected even though
    Python treats them as ints.

    Args:
        value: Raw argument value
        fallback: Returned instead of raising when the value is unusable

    Raises:
        InvalidCoordinateError: value is not a finite number and no fallback was given
    """
    parsed: Any = value
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            parsed = None

    if isinstance(parsed, Real) and not isinstance(parsed, bool) and math.isfinite(parsed):
        return float(parsed)

    if fallback is not None:
        return fallback

    raise InvalidCoordinateError(f"Expected numeric value but received: {value!r}")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize(value: Any, axis_max: int) -> int:
    """
    Convert a coordinate to a viewport pixel position.

    Values <= 1000 are scaled from the 0-1000 grid; larger values are clamped
    to [0, axis_max]. The result is always an int within [0, axis_max].
    """
    number = to_number(value)

    if number <= NORMALIZED_SCALE:
        ratio = min(max(number, 0.0), float(NORMALIZED_SCALE)) / NORMALIZED_SCALE
        return _round_half_up(ratio * axis_max)

    return _round_half_up(min(max(number, 0.0), float(axis_max)))


def normalize_x(value: Any, width: int) -> int:
    return normalize(value, width)


def normalize_y(value: Any, height: int) -> int:
    return normalize(value, height)
