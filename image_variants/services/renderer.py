"""
Image rendering for the delivery pipeline.

Maps each crop policy onto resize/crop/canvas operations and builds the
"broken image" placeholder served when a source cannot be rendered.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw

from ..core.colors import hex_to_rgb
from ..core.compositor import place
from ..core.errors import ImageError
from ..core.geometry import ResizeMode, round_half_up
from ..core.options import CropPolicy, RenderOptions
from ..core.raster import RasterImage

logger = logging.getLogger(__name__)

THUMB_RATIO = 0.75  # share of the canvas a centred thumbnail may take
PLACEHOLDER_OPACITY = 70
ICON_SIZE = 128


def _scaled(value: Optional[int]) -> Optional[int]:
    return round_half_up(value * THUMB_RATIO) if value else None


def resize_canvas_fit(source: RasterImage, options: RenderOptions) -> RasterImage:
    """Shrink to 75% of the box and centre it on a canvas of ``canvas_color``."""
    width, height = options.width, options.height
    thumb = source.copy().resize(_scaled(width), _scaled(height), ResizeMode.FIT, shrink_only=True)

    canvas = RasterImage.from_blank(
        width or height or thumb.width,
        height or width or thumb.height,
        hex_to_rgb(options.canvas_color),
    )
    place(canvas, thumb, "50%", "50%")
    thumb.close()
    return canvas


def resize_exact(source: RasterImage, options: RenderOptions) -> RasterImage:
    """Cover the box, then crop the centre to the exact size."""
    width, height = options.width, options.height
    return source.copy().resize(
        width or height or source.width,
        height or width or source.height,
        ResizeMode.EXACT,
    )


def resize_fit(source: RasterImage, options: RenderOptions) -> RasterImage:
    return source.copy().resize(options.width, options.height, ResizeMode.FIT | ResizeMode.SHRINK_ONLY)


def resize_shrink(source: RasterImage, options: RenderOptions) -> RasterImage:
    width, height = options.width, options.height
    return source.copy().resize(
        width or height or source.width,
        height or width or source.height,
        ResizeMode.SHRINK_ONLY,
    )


def render_variant(source: RasterImage, options: RenderOptions) -> RasterImage:
    """Return a new image for ``options``; ``source`` is left untouched."""
    if options.crop is CropPolicy.ORIGINAL:
        return source.copy()
    if options.crop is CropPolicy.CANVAS_FIT:
        return resize_canvas_fit(source, options)
    if options.crop is CropPolicy.EXACT_FILL:
        return resize_exact(source, options)
    if options.crop is CropPolicy.PROPORTIONAL_FIT:
        return resize_fit(source, options)
    return resize_shrink(source, options)


def draw_broken_icon(size: int = ICON_SIZE) -> RasterImage:
    """Draw a generic "broken picture" glyph on a transparent background."""
    icon = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(icon)
    grey = (150, 150, 150, 255)
    light = (205, 205, 205, 255)
    pad = size // 8
    stroke = max(2, size // 32)

    draw.rounded_rectangle((pad, pad, size - pad, size - pad), radius=size // 12, outline=grey, width=stroke)
    # sun and hills
    sun = size // 10
    draw.ellipse((size * 0.62 - sun, size * 0.32 - sun, size * 0.62 + sun, size * 0.32 + sun), fill=light)
    draw.polygon(
        [(pad + stroke, size * 0.72), (size * 0.38, size * 0.45), (size * 0.55, size * 0.62),
         (size * 0.68, size * 0.52), (size - pad - stroke, size * 0.72)],
        fill=light,
    )
    # crack across the frame
    crack = [(size * 0.30, pad - stroke), (size * 0.45, size * 0.40), (size * 0.35, size * 0.55),
             (size * 0.52, size - pad + stroke)]
    draw.line(crack, fill=(0, 0, 0, 0), width=stroke * 3)
    return RasterImage(icon)


def load_error_icon(path: Optional[str] = None) -> RasterImage:
    """Custom icon from ``path`` when readable, the drawn glyph otherwise."""
    if path and Path(path).is_file():
        try:
            return RasterImage.from_file(path)
        except ImageError as exc:
            logger.warning("[renderer] error icon %s unusable: %s", path, exc)
    return draw_broken_icon()


def build_placeholder(
    options: RenderOptions,
    icon_path: Optional[str] = None,
    fallback_size: int = 600,
) -> RasterImage:
    """Canvas of the requested size and colour with the error icon centred at 70% opacity."""
    width, height = options.width, options.height
    if width is None and height is None:
        width = height = fallback_size
    elif width is None:
        width = height
    elif height is None:
        height = width

    icon = load_error_icon(icon_path)
    icon.resize(_scaled(width), _scaled(height), ResizeMode.FIT | ResizeMode.SHRINK_ONLY)

    image = RasterImage.from_blank(width, height, hex_to_rgb(options.canvas_color))
    place(image, icon, "50%", "50%", PLACEHOLDER_OPACITY)
    icon.close()
    return image
