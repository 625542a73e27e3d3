"""Canvas colour helpers."""

import re
from typing import Tuple

RGB = Tuple[int, int, int]

_HEX6 = re.compile(r"[0-9a-fA-F]{6}")
WHITE: RGB = (255, 255, 255)


def _clamp(value: int) -> int:
    return max(0, min(255, value))


def hex_to_rgb(value: str) -> RGB:
    """Convert ``ff0a00`` into ``(255, 10, 0)``; malformed input gives white."""
    if not isinstance(value, str) or not _HEX6.fullmatch(value):
        return WHITE
    return (
        _clamp(int(value[0:2], 16)),
        _clamp(int(value[2:4], 16)),
        _clamp(int(value[4:6], 16)),
    )
