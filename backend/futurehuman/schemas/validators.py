"""Reusable coercion and validation helpers.

Shared by the API schemas and the wizard client so both sides agree on
what a valid style score and background colour look like:
- Style scores: integers in [0, 10]
- Background colours: `#rgb` / `#rrggbb`
"""

import math
import re
from typing import Any


SCORE_MIN = 0
SCORE_MAX = 10
DEFAULT_SCORE = 5

HEX_COLOR_REGEX = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def clamp_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    """Coerce a slider value into an integer score.

    Numbers and numeric strings are rounded half-up, then clamped to
    [SCORE_MIN, SCORE_MAX]. Anything else (None, booleans, junk text,
    NaN/inf) falls back to `default` before clamping.

    Args:
        value: Raw value from a form, a stored draft or the server
        default: Score used when the value is absent or not numeric

    Returns:
        Integer in [SCORE_MIN, SCORE_MAX]
    """
    number = default
    if value is not None and not isinstance(value, bool):
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = default
        if not math.isfinite(number):
            number = default
    return max(SCORE_MIN, min(SCORE_MAX, math.floor(number + 0.5)))


def normalize_hex(value: Any) -> str | None:
    """Normalize a hex colour to `#rgb` / `#rrggbb`.

    A missing leading `#` is added and digits are lower-cased. Values that
    are not 3- or 6-digit hex colours normalize to None.

    Args:
        value: Raw colour value

    Returns:
        Normalized colour, or None when the value is not a hex colour
    """
    if not isinstance(value, str):
        return None
    match = HEX_COLOR_REGEX.match(value.strip())
    if not match:
        return None
    return "#" + match.group(1).lower()


def validate_hex_color(value: str | None) -> str | None:
    """Pydantic hook: normalize a colour, rejecting invalid non-null values.

    Raises:
        ValueError: If the value is not a hex colour
    """
    if value is None:
        return None
    normalized = normalize_hex(value)
    if normalized is None:
        raise ValueError("Must be a hex colour (#rgb or #rrggbb)")
    return normalized
