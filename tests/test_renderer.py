import logging

from PIL import Image

from image_variants.core import log_buffer
from image_variants.core.options import parse_options
from image_variants.core.raster import RasterImage
from image_variants.services.renderer import render_variant, resize_exact, resize_shrink


def _source(width, height):
    return RasterImage(Image.new("RGBA", (width, height), (0, 128, 255, 255)))


def test_exact_scales_small_sources_up_to_the_box():
    with _source(100, 50) as source, resize_exact(source, parse_options("w400-h300-z2")) as out:
        assert out.size == (400, 300)
        assert source.size == (100, 50)


def test_shrink_never_upscales():
    with _source(100, 50) as source, resize_shrink(source, parse_options("w400-h300")) as out:
        assert out.size == (100, 50)


def test_shrink_fits_large_sources_into_the_box():
    with _source(800, 400) as source, resize_shrink(source, parse_options("w400-h300")) as out:
        assert out.size == (400, 200)


def test_shrink_with_one_dimension_uses_it_for_both():
    with _source(800, 400) as source, render_variant(source, parse_options("w200")) as out:
        assert out.size == (200, 100)


def test_log_buffer_installs_a_single_handler(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [h for h in root.handlers if not isinstance(h, log_buffer._LogBufferHandler)])
    monkeypatch.setattr(log_buffer, "_installed", False)

    log_buffer.install_log_buffer()
    log_buffer.install_log_buffer()

    assert sum(isinstance(h, log_buffer._LogBufferHandler) for h in root.handlers) == 1
