from io import BytesIO

import pytest
from PIL import Image

from image_variants.core.compositor import fade, place
from image_variants.core.errors import GeometryError, SourceDecodeError, UnsupportedFormatError
from image_variants.core.geometry import ResizeMode
from image_variants.core.raster import (
    EMPTY_GIF,
    ImageFormat,
    RasterImage,
    detect_type_from_bytes,
    detect_type_from_file,
    format_from_extension,
)

RED = (255, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def _two_tone(width, height, first, second, vertical=True) -> RasterImage:
    """Top/bottom (or left/right) halves in two colours."""
    im = Image.new("RGBA", (width, height), first)
    box = (0, height // 2, width, height) if vertical else (width // 2, 0, width, height)
    im.paste(second, box)
    return RasterImage(im)


def test_exact_resize_fills_then_crops_centre():
    image = _two_tone(100, 200, (0, 0, 255, 255), (0, 255, 0, 255))
    image.resize(300, 300, ResizeMode.EXACT, shrink_only=True)
    assert image.size == (300, 300)
    assert image.handle.getpixel((150, 10))[:3] == (0, 0, 255)
    assert image.handle.getpixel((150, 290))[:3] == (0, 255, 0)


def test_negative_width_flips_horizontally():
    image = _two_tone(2, 1, RED, (0, 0, 255, 255), vertical=False)
    image.resize(-2, None)
    assert image.size == (2, 1)
    assert image.handle.getpixel((0, 0)) == (0, 0, 255, 255)


def test_palette_image_is_resized_in_true_colour():
    image = RasterImage(Image.new("P", (40, 20)))
    image.resize(20, None)
    assert image.size == (20, 10)
    assert image.is_true_color


def test_crop_rejects_empty_cutout():
    image = RasterImage.from_blank(10, 10)
    with pytest.raises(GeometryError):
        image.crop(20, 20, 5, 5)


def test_from_blank_requires_positive_size():
    with pytest.raises(GeometryError):
        RasterImage.from_blank(0, 10)


def test_from_file_errors(tmp_path):
    with pytest.raises(SourceDecodeError, match="not found"):
        RasterImage.from_file(tmp_path / "nope.png")
    junk = tmp_path / "junk.png"
    junk.write_bytes(b"definitely not an image")
    with pytest.raises(SourceDecodeError, match="Unknown type"):
        RasterImage.from_file(junk)


@pytest.mark.parametrize("fmt", list(ImageFormat))
def test_encoded_image_decodes_to_same_size(fmt):
    image = _two_tone(37, 23, RED, (0, 0, 0, 0))
    data = image.encode(fmt, 72)
    assert detect_type_from_bytes(data) is fmt
    assert RasterImage.from_bytes(data).size == (37, 23)


def test_save_uses_extension_and_writes_atomically(tmp_path):
    path = tmp_path / "nested" / "out.jpg"
    data = RasterImage.from_blank(10, 10, (0, 128, 0)).save(path, quality=90)
    assert path.read_bytes() == data
    assert detect_type_from_file(path) is ImageFormat.JPEG
    assert [p.name for p in path.parent.iterdir()] == ["out.jpg"]


def test_save_rejects_unknown_extension(tmp_path):
    with pytest.raises(UnsupportedFormatError):
        RasterImage.from_blank(10, 10).save(tmp_path / "out.bmp")


def test_quality_clamping():
    assert ImageFormat.PNG.clamp_quality(72) == 9
    assert ImageFormat.PNG.clamp_quality(None) == 9
    assert ImageFormat.JPEG.clamp_quality(150) == 100
    assert ImageFormat.JPEG.clamp_quality(None) == 85
    assert ImageFormat.WEBP.clamp_quality(None) == 80
    assert ImageFormat.GIF.clamp_quality(50) is None


def test_format_helpers():
    assert format_from_extension("photo.JPG") is ImageFormat.JPEG
    assert format_from_extension("photo.webp") is ImageFormat.WEBP
    with pytest.raises(UnsupportedFormatError):
        format_from_extension("photo.tiff")
    assert detect_type_from_bytes(b"nope") is None
    assert ImageFormat.JPEG.mime_type == "image/jpeg"


def test_empty_gif_is_a_single_pixel():
    with Image.open(BytesIO(EMPTY_GIF)) as im:
        assert im.format == "GIF"
        assert im.size == (1, 1)


def test_place_opacity_zero_is_noop():
    background = RasterImage.from_blank(30, 30, (255, 255, 255))
    before = background.handle.tobytes()
    place(background, RasterImage.from_blank(10, 10, (255, 0, 0)), "50%", "50%", 0)
    assert background.handle.tobytes() == before


def test_place_centres_with_percent_offsets():
    background = RasterImage.from_blank(30, 30, (255, 255, 255))
    place(background, RasterImage.from_blank(10, 10, (255, 0, 0)), "50%", "50%")
    assert background.handle.getpixel((10, 10)) == RED
    assert background.handle.getpixel((19, 19)) == RED
    assert background.handle.getpixel((9, 9)) == WHITE
    assert background.handle.getpixel((20, 20)) == WHITE


def test_place_with_partial_opacity_blends():
    background = RasterImage.from_blank(20, 20, (255, 255, 255))
    place(background, RasterImage.from_blank(20, 20, (255, 0, 0)), 0, 0, 50)
    red, green, blue, alpha = background.handle.getpixel((5, 5))
    assert red == 255 and alpha == 255
    assert 120 <= green <= 135 and green == blue


def test_place_keeps_background_alpha():
    background = RasterImage.from_blank(10, 10, (0, 0, 0), alpha=0)
    place(background, RasterImage.from_blank(10, 10, (255, 0, 0)), 0, 0, 50)
    assert 120 <= background.handle.getpixel((0, 0))[3] <= 135


def test_place_flattens_palette_foreground():
    foreground = RasterImage(Image.new("RGB", (4, 4), (0, 0, 255)).convert("P"))
    background = RasterImage.from_blank(8, 8, (255, 255, 255))
    place(background, foreground, 2, 2, 100)
    assert background.handle.getpixel((3, 3)) == (0, 0, 255, 255)


def test_place_clips_negative_offsets():
    background = RasterImage.from_blank(20, 20, (255, 255, 255))
    place(background, RasterImage.from_blank(10, 10, (255, 0, 0)), -5, -5)
    assert background.handle.getpixel((0, 0)) == RED
    assert background.handle.getpixel((4, 4)) == RED
    assert background.handle.getpixel((5, 5)) == WHITE


def test_fade_scales_alpha():
    faded = fade(Image.new("RGBA", (1, 1), (1, 2, 3, 255)), 70)
    assert faded.getpixel((0, 0)) == (1, 2, 3, 179)
