"""
Pure size/cutout calculations for resize and crop.

Dimensions accept pixels (``int`` or a decimal string) or percentages
(``"50%"``). Percent sizes resolve against the source dimension; percent
offsets resolve against the space left over once the size is known.
"""

from __future__ import annotations

import math
from enum import IntFlag
from typing import Tuple, Union

from .errors import GeometryError

Dimension = Union[int, str]


def round_half_up(value: float) -> int:
    """Round halves away from zero, unlike the banker's rounding of round()."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


class ResizeMode(IntFlag):
    FIT = 0b0000
    SHRINK_ONLY = 0b0001
    STRETCH = 0b0010
    FILL = 0b0100
    EXACT = 0b1000


def parse_dimension(value: Dimension) -> Tuple[float, bool]:
    """Return ``(number, is_percent)`` for a pixel or percent literal."""
    if isinstance(value, bool):
        raise GeometryError(f"Expected dimension in int|string, {value!r} given.")
    if isinstance(value, int):
        return value, False
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("%"):
            try:
                return float(text[:-1]), True
            except ValueError:
                pass
        else:
            try:
                return int(text), False
            except ValueError:
                pass
    raise GeometryError(f"Expected dimension in int|string, {value!r} given.")


def is_negative(value: Dimension | None) -> bool:
    if value is None:
        return False
    number, _ = parse_dimension(value)
    return number < 0


def calculate_size(
    src_width: int,
    src_height: int,
    width: Dimension | None,
    height: Dimension | None,
    mode: ResizeMode = ResizeMode.FIT,
    shrink_only: bool = False,
) -> Tuple[int, int]:
    """Compute the resized dimensions; the sign of a request is ignored here."""
    shrink_only = shrink_only or bool(mode & ResizeMode.SHRINK_ONLY)
    new_width = new_height = 0
    width_percent = False

    if width is not None:
        number, width_percent = parse_dimension(width)
        if width_percent:
            new_width = round_half_up(src_width / 100 * abs(number))
        else:
            new_width = abs(int(number))

    if height is not None:
        number, height_percent = parse_dimension(height)
        if height_percent:
            new_height = round_half_up(src_height / 100 * abs(number))
            if width_percent:
                mode |= ResizeMode.STRETCH
        else:
            new_height = abs(int(number))

    if mode & ResizeMode.STRETCH:
        if not new_width or not new_height:
            raise GeometryError("Both width and height are required for stretching.")
        if shrink_only:
            new_width = round_half_up(src_width * min(1, new_width / src_width))
            new_height = round_half_up(src_height * min(1, new_height / src_height))
    else:
        if not new_width and not new_height:
            raise GeometryError("At least one dimension is required.")
        scales = []
        if new_width > 0:
            scales.append(new_width / src_width)
        if new_height > 0:
            scales.append(new_height / src_height)
        if mode & ResizeMode.FILL:
            scales = [max(scales)]
        if shrink_only:
            scales.append(1)
        scale = min(scales)
        new_width = round_half_up(src_width * scale)
        new_height = round_half_up(src_height * scale)

    return max(new_width, 1), max(new_height, 1)


def calculate_cutout(
    src_width: int,
    src_height: int,
    left: Dimension,
    top: Dimension,
    width: Dimension,
    height: Dimension,
) -> Tuple[int, int, int, int]:
    """Return ``(x, y, width, height)`` of a cutout kept inside the source."""
    new_width, percent = parse_dimension(width)
    if percent:
        new_width = round_half_up(src_width / 100 * new_width)
    new_height, percent = parse_dimension(height)
    if percent:
        new_height = round_half_up(src_height / 100 * new_height)
    new_width, new_height = int(new_width), int(new_height)

    x, percent = parse_dimension(left)
    if percent:
        x = round_half_up((src_width - new_width) / 100 * x)
    y, percent = parse_dimension(top)
    if percent:
        y = round_half_up((src_height - new_height) / 100 * y)
    x, y = min(int(x), src_width), min(int(y), src_height)

    if x < 0:
        new_width += x
        x = 0
    if y < 0:
        new_height += y
        y = 0

    new_width = max(0, min(new_width, src_width - x))
    new_height = max(0, min(new_height, src_height - y))
    return x, y, new_width, new_height


def resolve_offset(value: Dimension, free_space: int) -> int:
    """Resolve a placement offset; percentages are taken of ``free_space``."""
    number, percent = parse_dimension(value)
    if percent:
        return round_half_up(free_space / 100 * number)
    return int(number)
