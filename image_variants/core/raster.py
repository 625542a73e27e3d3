"""
Thin Pillow wrapper exposing only the raster operations the pipeline needs.

A ``RasterImage`` owns exactly one Pillow image at a time. Operations that
change geometry build a new Pillow image and swap it in, so callers that
want to keep the original must ``copy()`` first.
"""

from __future__ import annotations

import logging
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image

from .colors import RGB
from .errors import EncodeError, GeometryError, SourceDecodeError, UnsupportedFormatError
from .geometry import Dimension, ResizeMode, calculate_cutout, calculate_size, is_negative
from .storage import write_bytes_atomic

logger = logging.getLogger(__name__)

# 1x1 transparent GIF
EMPTY_GIF = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\x00\x00\x00!\xf9\x04\x01\x00"
    b"\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pillow_format(self) -> str:
        return self.value.upper()

    def clamp_quality(self, quality: Optional[int]) -> Optional[int]:
        """Quality is 0..100 for JPEG (default 85) and WebP (default 80), 0..9 for PNG (default 9)."""
        if self is ImageFormat.GIF:
            return None
        default, ceiling = _QUALITY_RANGES[self]
        if quality is None:
            return default
        return max(0, min(ceiling, quality))


_QUALITY_RANGES = {
    ImageFormat.JPEG: (85, 100),
    ImageFormat.PNG: (9, 9),
    ImageFormat.WEBP: (80, 100),
}

_PILLOW_FORMATS = {fmt.pillow_format: fmt for fmt in ImageFormat}

_EXTENSIONS = {
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "gif": ImageFormat.GIF,
    "webp": ImageFormat.WEBP,
}


def format_from_extension(name: Union[str, Path]) -> ImageFormat:
    ext = Path(name).suffix.lstrip(".").lower()
    try:
        return _EXTENSIONS[ext]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported file extension '{ext}'.") from None


def _detect(source) -> Optional[ImageFormat]:
    try:
        with Image.open(source) as im:
            return _PILLOW_FORMATS.get(im.format or "")
    except (OSError, ValueError):
        return None


def detect_type_from_file(path: Union[str, Path]) -> Optional[ImageFormat]:
    """Sniff the file contents; None for unknown or unreadable files."""
    return _detect(Path(path))


def detect_type_from_bytes(data: bytes) -> Optional[ImageFormat]:
    return _detect(BytesIO(data))


class RasterImage:
    """One decoded image plus the primitive operations used by the renderer."""

    def __init__(self, handle: Image.Image):
        self._handle = handle

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RasterImage":
        path = Path(path)
        if detect_type_from_file(path) is None:
            if path.is_file():
                raise SourceDecodeError(f"Unknown type of file '{path}'.")
            raise SourceDecodeError(f"File '{path}' not found.")
        try:
            with Image.open(path) as im:
                im.load()
                return cls(im.copy())
        except (OSError, ValueError) as exc:
            raise SourceDecodeError(f"Unable to open file '{path}'. {exc}") from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterImage":
        if detect_type_from_bytes(data) is None:
            raise SourceDecodeError("Unknown type of image.")
        try:
            with Image.open(BytesIO(data)) as im:
                im.load()
                return cls(im.copy())
        except (OSError, ValueError) as exc:
            raise SourceDecodeError(f"Unable to open image from string. {exc}") from exc

    @classmethod
    def from_blank(cls, width: int, height: int, color: RGB = (0, 0, 0), alpha: int = 255) -> "RasterImage":
        """New true-colour image filled with ``color``; ``alpha`` 0 is fully transparent."""
        if width < 1 or height < 1:
            raise GeometryError("Image width and height must be greater than zero.")
        alpha = max(0, min(255, alpha))
        return cls(Image.new("RGBA", (width, height), (*color, alpha)))

    @property
    def handle(self) -> Image.Image:
        return self._handle

    @property
    def width(self) -> int:
        return self._handle.width

    @property
    def height(self) -> int:
        return self._handle.height

    @property
    def size(self) -> Tuple[int, int]:
        return self._handle.size

    @property
    def is_true_color(self) -> bool:
        return self._handle.mode in ("RGB", "RGBA")

    def copy(self) -> "RasterImage":
        return RasterImage(self._handle.copy())

    def _replace(self, handle: Image.Image) -> None:
        old, self._handle = self._handle, handle
        if old is not handle:
            old.close()

    def palette_to_true_color(self) -> "RasterImage":
        if self._handle.mode != "RGBA":
            self._replace(self._handle.convert("RGBA"))
        return self

    def resize(
        self,
        width: Dimension | None = None,
        height: Dimension | None = None,
        mode: ResizeMode = ResizeMode.FIT,
        shrink_only: bool = False,
    ) -> "RasterImage":
        """Scale the image; negative sizes also flip along that axis."""
        if mode == ResizeMode.EXACT:
            return self.resize(width, height, ResizeMode.FILL).crop("50%", "50%", width, height)

        new_width, new_height = calculate_size(self.width, self.height, width, height, mode, shrink_only)
        if (new_width, new_height) != self.size:
            if not self.is_true_color:
                self.palette_to_true_color()
            self._replace(self._handle.resize((new_width, new_height), Image.Resampling.LANCZOS))

        flip_x, flip_y = is_negative(width), is_negative(height)
        if flip_x or flip_y:
            self.flip(horizontal=flip_x, vertical=flip_y)
        return self

    def crop(self, left: Dimension, top: Dimension, width: Dimension, height: Dimension) -> "RasterImage":
        x, y, w, h = calculate_cutout(self.width, self.height, left, top, width, height)
        if w < 1 or h < 1:
            raise GeometryError("Cutout lies outside of the image.")
        self._replace(self._handle.crop((x, y, x + w, y + h)))
        return self

    def flip(self, horizontal: bool = False, vertical: bool = False) -> "RasterImage":
        handle = self._handle
        if horizontal:
            handle = handle.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if vertical:
            handle = handle.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        self._replace(handle)
        return self

    def _prepared_for(self, fmt: ImageFormat) -> Image.Image:
        im = self._handle
        if fmt is ImageFormat.JPEG and im.mode not in ("RGB", "L", "CMYK"):
            return im.convert("RGB")
        if fmt is ImageFormat.WEBP and im.mode not in ("RGB", "RGBA"):
            return im.convert("RGBA")
        return im

    def encode(self, fmt: ImageFormat, quality: Optional[int] = None) -> bytes:
        """Encode to ``fmt`` with format-specific quality clamping."""
        fmt = ImageFormat(fmt)
        quality = fmt.clamp_quality(quality)
        params: dict = {}
        if fmt is ImageFormat.PNG:
            params["compress_level"] = quality
        elif quality is not None:
            params["quality"] = quality

        buffer = BytesIO()
        try:
            self._prepared_for(fmt).save(buffer, format=fmt.pillow_format, **params)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"Unable to encode image as {fmt.value}: {exc}") from exc

        data = buffer.getvalue()
        if not data:
            raise EncodeError("Image rendering failed")
        return data

    def save(self, path: Union[str, Path], quality: Optional[int] = None, fmt: Optional[ImageFormat] = None) -> bytes:
        """Encode and atomically write to ``path``; returns the written bytes."""
        if fmt is None:
            fmt = format_from_extension(path)
        data = self.encode(fmt, quality)
        write_bytes_atomic(Path(path), data)
        logger.debug("[raster] wrote %s (%d bytes)", path, len(data))
        return data

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> "RasterImage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
