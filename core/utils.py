import math
from typing import Optional, Union


def round_half_up(value: Union[int, float]) -> int:
    """
    Round to the nearest integer, halves going up (0.5 -> 1, -0.5 -> 0).
    """
    return int(math.floor(value + 0.5))


def clamp(value: int, lower: int, upper: int) -> int:
    """
    Clamp an integer into [lower, upper].
    """
    return max(lower, min(upper, value))


def parse_int(text: str) -> Optional[int]:
    """
    Parse a leading integer the lenient way: "150", " 150 ", "150W", "90RPM".

    Returns None when no digits lead the string.
    """
    if not isinstance(text, str):
        return None
    stripped = text.strip()
    sign = 1
    if stripped.startswith("-"):
        sign = -1
        stripped = stripped[1:]
    elif stripped.startswith("+"):
        stripped = stripped[1:]
    digits = ""
    for ch in stripped:
        if not ch.isdigit():
            break
        digits += ch
    if not digits:
        return None
    return sign * int(digits)
