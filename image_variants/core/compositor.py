"""Alpha-aware placement of one image onto another."""

from __future__ import annotations

from PIL import Image

from .geometry import Dimension, resolve_offset, round_half_up
from .raster import RasterImage


def _flatten(handle: Image.Image) -> Image.Image:
    """Draw a non-RGBA image onto a fully transparent true-colour buffer."""
    buffer = Image.new("RGBA", handle.size, (0, 0, 0, 0))
    buffer.alpha_composite(handle.convert("RGBA"))
    return buffer


def fade(handle: Image.Image, opacity: int) -> Image.Image:
    """Scale every pixel's alpha by ``opacity`` percent."""
    table = [round_half_up(alpha * opacity / 100) for alpha in range(256)]
    red, green, blue, alpha = handle.split()
    return Image.merge("RGBA", (red, green, blue, alpha.point(table)))


def place(
    background: RasterImage,
    foreground: RasterImage,
    left: Dimension = 0,
    top: Dimension = 0,
    opacity: int = 100,
) -> RasterImage:
    """Composite ``foreground`` over ``background`` at ``left``/``top``.

    Offsets accept pixels or percent; percent is taken of the free space
    ``background - foreground`` so ``"50%"`` centres. ``opacity`` runs 0..100
    and 0 leaves the background untouched. Existing background alpha is
    blended, never overwritten.
    """
    opacity = max(0, min(100, opacity))
    if opacity == 0:
        return background

    width, height = foreground.size
    x = resolve_offset(left, background.width - width)
    y = resolve_offset(top, background.height - height)

    overlay = foreground.handle
    if overlay.mode != "RGBA":
        overlay = _flatten(overlay)
    if opacity < 100:
        overlay = fade(overlay, opacity)

    # Clip the part hanging off the top/left edge; Pillow clips the rest.
    src_x, src_y = max(0, -x), max(0, -y)
    dest_x, dest_y = max(0, x), max(0, y)
    if src_x >= width or src_y >= height or dest_x >= background.width or dest_y >= background.height:
        return background

    background.palette_to_true_color()
    background.handle.alpha_composite(overlay, dest=(dest_x, dest_y), source=(src_x, src_y))
    return background
