from pathlib import Path

import pytest
from PIL import Image

from image_variants.core.config import settings
from image_variants.core.storage import DirectoryContext

MODULE = "products"
STORAGE_TYPE = "gallery"
ITEM_ID = 42


@pytest.fixture
def storage_root(tmp_path, monkeypatch):
    """Point the service at an empty storage tree under tmp_path."""
    root = tmp_path / "storage"
    monkeypatch.setattr(settings, "STORAGE_ROOT", str(root))
    monkeypatch.setattr(settings, "DIRECTORY_LEVEL", 4)
    monkeypatch.setattr(settings, "ERROR_ICON_PATH", None)
    return root


@pytest.fixture
def directory(storage_root):
    return DirectoryContext.build(
        level=settings.DIRECTORY_LEVEL,
        storage_type=STORAGE_TYPE,
        module=MODULE,
        item_id=ITEM_ID,
        root=storage_root,
        aliases=settings.MODULE_ALIASES,
    )


@pytest.fixture
def make_source(directory):
    """Write a source image into the item's storage directory."""
    def _make(name: str, size=(1200, 800), color=(255, 0, 0), image: Image.Image = None) -> Path:
        path = directory.storage_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        im = image if image is not None else Image.new("RGB", size, color)
        im.save(path)
        return path

    return _make
