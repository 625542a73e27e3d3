"""
Storage layout and cache path resolution.

Sources live in ``<root>/<module>/<type>/<hex path>/<file>`` and their
variants in ``<root>/0/cache/<module>/<type>/<hex path>/<file>-<key>.<ext>``.
Every path is computed from the request alone (never by listing
directories), so the same item, file and options always map to the same
cache file and existence checks need no locking.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from .options import RenderOptions

logger = logging.getLogger(__name__)

CACHE_DIR = Path("0") / "cache"
PLACEHOLDER_DIR = CACHE_DIR / "0"
DEFAULT_FILENAME = "missing.png"


def _sanitize_segment(value: Optional[str], default: str = "0") -> str:
    """Make a single path segment safe: no separators, no dot-dot, no control chars."""
    if value is None:
        return default
    value = re.sub(r"[^A-Za-z0-9_\-]", "_", str(value).strip())
    value = re.sub(r"_+", "_", value).strip("_")
    return value or default


def hex_directory(item_id: Union[str, int, None], level: int) -> str:
    """Hex-encode ``item_id``, left-pad to ``level`` digits and split into 2-char segments.

    ``hex_directory(4660, 6)`` -> ``"00/12/34"``; non-numeric ids count as 0.
    """
    try:
        number = abs(int(str(item_id).strip())) if item_id is not None else 0
    except ValueError:
        number = 0
    digits = format(number, "x").rjust(max(level, 0), "0")
    return "/".join(digits[i:i + 2] for i in range(0, len(digits), 2))


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to a sibling temp file and rename it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def delete_tree(path: Path) -> bool:
    """Remove ``path`` recursively; returns False when nothing was removed."""
    try:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            return False
    except OSError as exc:
        logger.warning("[storage] could not delete %s: %s", path, exc)
        return False
    return True


def file_mtime(path: Path) -> Optional[int]:
    try:
        return int(path.stat().st_mtime)
    except OSError:
        return None


@dataclass(frozen=True)
class DirectoryContext:
    """Where the sources and the cached variants of one item live."""
    storage_dir: Path
    cache_dir: Path
    placeholder_dir: Path

    @classmethod
    def build(
        cls,
        level: int,
        storage_type: Optional[str] = None,
        module: Optional[str] = None,
        item_id: Union[str, int, None] = None,
        root: Union[str, Path] = "storage",
        aliases: Optional[Mapping[str, str]] = None,
    ) -> "DirectoryContext":
        root = Path(root)
        directory_id = (aliases or {}).get(storage_type or "", storage_type)
        relative = Path(
            _sanitize_segment(module),
            _sanitize_segment(directory_id),
            hex_directory(item_id, level),
        )
        return cls(
            storage_dir=root / relative,
            cache_dir=root / CACHE_DIR / relative,
            placeholder_dir=root / PLACEHOLDER_DIR,
        )


@dataclass(frozen=True)
class FileContext:
    """Source, cache and placeholder paths for one file and one option set."""
    directory: DirectoryContext
    options_hash: str
    source_path: Path
    cache_key: str
    cache_path: Path
    cache_webp_path: Path
    missing_png_path: Path
    missing_webp_path: Path

    @classmethod
    def build(
        cls,
        directory: DirectoryContext,
        options: RenderOptions,
        filename: Optional[str] = None,
    ) -> "FileContext":
        name = Path(filename or DEFAULT_FILENAME).name or DEFAULT_FILENAME
        stem, ext = Path(name).stem, Path(name).suffix.lstrip(".")
        options_hash = options.hash()

        source_path = directory.storage_dir / f"{stem}.{ext}"
        cache_key = build_cache_key(source_path, options_hash)

        return cls(
            directory=directory,
            options_hash=options_hash,
            source_path=source_path,
            cache_key=cache_key,
            cache_path=directory.cache_dir / f"{stem}-{cache_key}.{ext}",
            cache_webp_path=directory.cache_dir / f"{stem}-{cache_key}.webp",
            missing_png_path=directory.placeholder_dir / f"{options_hash}.png",
            missing_webp_path=directory.placeholder_dir / f"{options_hash}.webp",
        )

    def source_exists(self) -> bool:
        return self.source_path.is_file()

    def cache_file(self, webp: bool) -> Path:
        return self.cache_webp_path if webp else self.cache_path

    def placeholder_file(self, webp: bool) -> Path:
        return self.missing_webp_path if webp else self.missing_png_path

    def delete_cache(self) -> bool:
        """Drop every cached variant of this item."""
        removed = delete_tree(self.directory.cache_dir)
        if removed:
            logger.info("[storage] invalidated cache %s", self.directory.cache_dir)
        return removed


def build_cache_key(source_path: Union[str, Path], options_hash: str) -> str:
    """sha1 of ``source|options`` cut to 32 hex chars."""
    source = Path(source_path).as_posix()
    return hashlib.sha1(f"{source}|{options_hash}".encode("utf-8")).hexdigest()[:32]
