"""
Render options parsed from the compact URL argument string.

The argument string looks like ``w600-h400-z1-cfff0a-e1``: tokens joined by
``-``, first character is the key, the remainder is the value. Parsing is
total: malformed or unknown tokens degrade to defaults and never raise, so
untrusted URLs cannot produce exceptions or unbounded sizes.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional

DEFAULT_CANVAS = "ffffff"
DEFAULT_QUALITY = 72

_DIGITS = re.compile(r"[0-9]+")
_HEX6 = re.compile(r"[0-9a-fA-F]{6}")
# int() refuses very long digit strings; past this length a value is clamped anyway
_MAX_DIGITS = 9
_SATURATED = 10**_MAX_DIGITS


class CropPolicy(IntEnum):
    NONE = 0
    CANVAS_FIT = 1
    EXACT_FILL = 2
    PROPORTIONAL_FIT = 3
    ORIGINAL = -1


@dataclass(frozen=True)
class RenderOptions:
    """Validated, immutable option set for one requested variant."""
    width: Optional[int] = None
    height: Optional[int] = None
    crop: CropPolicy = CropPolicy.NONE
    canvas_color: str = DEFAULT_CANVAS
    quality: int = DEFAULT_QUALITY
    missing_placeholder: bool = True

    @property
    def is_missing_all_size(self) -> bool:
        return self.width is None and self.height is None

    def with_size(self, width: Optional[int], height: Optional[int]) -> "RenderOptions":
        return replace(self, width=width, height=height)

    def hash(self) -> str:
        """Stable fingerprint of the option fields, used to tell cache variants apart."""
        payload = json.dumps(
            {
                "w": self.width,
                "h": self.height,
                "c": self.canvas_color,
                "e": self.missing_placeholder,
                "z": int(self.crop),
                "q": self.quality,
            },
            separators=(",", ":"),
        )
        return hashlib.md5(payload.encode("utf-8")).hexdigest()


def _parse_int(value: str) -> Optional[int]:
    """Digits only; anything longer than ``_MAX_DIGITS`` saturates at ``_SATURATED``."""
    if not _DIGITS.fullmatch(value):
        return None
    digits = value.lstrip("0") or "0"
    if len(digits) > _MAX_DIGITS:
        return _SATURATED
    return int(digits)


def _parse_size(value: str) -> Optional[int]:
    number = _parse_int(value)
    if number is not None and number > 0:
        return number
    return None


def _clamp(value: Optional[int], low: int, high: int) -> Optional[int]:
    if value is None:
        return None
    return max(low, min(high, value))


def parse_options(
    args: Optional[str],
    min_width: int = 50,
    min_height: int = 50,
    max_width: int = 2560,
    max_height: int = 2560,
    original: bool = False,
) -> RenderOptions:
    """Parse ``args`` into ``RenderOptions``; last token wins per key.

    ``original`` requests the source's own geometry: width/height are dropped
    and no limits are applied.
    """
    width: Optional[int] = None
    height: Optional[int] = None
    crop = CropPolicy.NONE
    canvas = DEFAULT_CANVAS
    quality = DEFAULT_QUALITY
    missing = True

    for item in (args or "").split("-"):
        if not item:
            continue
        key, value = item[0], item[1:]
        if key == "w":
            width = _parse_size(value)
        elif key == "h":
            height = _parse_size(value)
        elif key == "q":
            number = _parse_int(value)
            quality = DEFAULT_QUALITY if number is None else number
        elif key == "c":
            canvas = value if _HEX6.fullmatch(value) else DEFAULT_CANVAS
        elif key == "e":
            missing = value != "0"
        elif key == "z":
            crop = CropPolicy(int(value)) if value in ("0", "1", "2", "3") else CropPolicy.NONE

    if original:
        crop = CropPolicy.ORIGINAL

    if crop is CropPolicy.ORIGINAL:
        width = height = None
    elif width is None and height is None:
        width, height = min_width, min_height
    else:
        width = _clamp(width, min_width, max_width)
        height = _clamp(height, min_height, max_height)

    return RenderOptions(
        width=width,
        height=height,
        crop=crop,
        canvas_color=canvas,
        quality=quality,
        missing_placeholder=missing,
    )


def resolve_options(args: Optional[str], original: bool = False) -> RenderOptions:
    """Parse ``args`` with the limits from settings."""
    from .config import settings

    return parse_options(
        args,
        min_width=settings.MIN_WIDTH,
        min_height=settings.MIN_HEIGHT,
        max_width=settings.MAX_WIDTH,
        max_height=settings.MAX_HEIGHT,
        original=original,
    )
