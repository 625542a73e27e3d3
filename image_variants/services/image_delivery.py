"""
Request orchestration for image variants.

Per request the flow is:

1. browser cache: ``If-Modified-Since`` not older than the cached variant -> 304
2. server cache: cached variant on disk -> send it
3. generate: decode the source, render, encode, cache, send
4. error: placeholder (cached or freshly drawn) when the source is missing
   or anything above fails

The client always gets an image and a 200/304; failures are logged and
degrade to the placeholder, never to a 5xx.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core.config import Settings, settings as default_settings
from ..core.errors import UnsupportedFormatError
from ..core.options import RenderOptions
from ..core.raster import EMPTY_GIF, ImageFormat, RasterImage, detect_type_from_bytes, detect_type_from_file
from ..core.request_context import RequestContext
from ..core.storage import FileContext, file_mtime, write_bytes_atomic
from ..core.time_utils import format_http_date
from .renderer import build_placeholder, render_variant

logger = logging.getLogger(__name__)


@dataclass
class ImageReply:
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    outcome: str = "served"


def build_headers(
    fmt: Optional[ImageFormat],
    size: int,
    last_modified: int,
    request_time: int,
    lifetime: int,
    component: str,
) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if fmt is not None:
        headers["Content-Type"] = fmt.mime_type
    if size > 0:
        headers["Content-Length"] = str(size)
    headers.update({
        "Accept-Ranges": "none",
        "X-Component": component,
        "Cache-Control": f"max-age={lifetime}, no-transform",
        "Expires": format_http_date(request_time + lifetime),
        "Connection": "close",
        "Last-Modified": format_http_date(last_modified),
    })
    return headers


class ImageDelivery:
    """Serve one requested variant of one file."""

    def __init__(
        self,
        files: FileContext,
        options: RenderOptions,
        request: RequestContext,
        config: Settings = default_settings,
    ):
        self.files = files
        self.options = options
        self.request = request
        self.config = config
        self.webp = request.supports_webp

    def run(self) -> ImageReply:
        try:
            reply = self.try_browser_cache() or self.try_server_cache()
            if reply is not None:
                return reply
            return self.try_generate()
        except Exception:
            logger.exception("[image_delivery] unexpected failure for %s", self.files.source_path)
            self._apply_fallback_size()
            return self.serve_error()

    def _reply(self, data: bytes, fmt: Optional[ImageFormat], last_modified: int, outcome: str) -> ImageReply:
        headers = build_headers(
            fmt,
            len(data),
            last_modified,
            self.request.request_time,
            self.config.CACHE_LIFETIME_SECONDS,
            self.config.COMPONENT_HEADER,
        )
        return ImageReply(status_code=200, content=data, headers=headers, outcome=outcome)

    def _apply_fallback_size(self) -> None:
        if self.options.is_missing_all_size:
            size = self.config.PLACEHOLDER_SIZE
            self.options = self.options.with_size(size, size)

    def try_browser_cache(self) -> Optional[ImageReply]:
        since = self.request.if_modified_since_timestamp()
        if since is None or not self.files.source_exists():
            return None
        mtime = file_mtime(self.files.cache_file(self.webp))
        if mtime is None or since < mtime:
            return None
        logger.debug("[image_delivery] 304 for %s", self.files.cache_key)
        return ImageReply(
            status_code=304,
            headers={"Connection": "close", "X-Component": self.config.COMPONENT_HEADER},
            outcome="not_modified",
        )

    def try_server_cache(self) -> Optional[ImageReply]:
        if not self.files.source_exists():
            return None
        path = self.files.cache_file(self.webp)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        fmt = detect_type_from_bytes(data)
        if fmt is None:
            # partial or corrupt write; render again and overwrite it
            logger.warning("[image_delivery] unreadable cache file %s, regenerating", path)
            return None
        logger.debug("[image_delivery] cache hit %s", path)
        return self._reply(data, fmt, file_mtime(path) or self.request.request_time, "served")

    def try_generate(self) -> ImageReply:
        if not self.files.source_exists():
            logger.info("[image_delivery] source missing: %s", self.files.source_path)
            self.files.delete_cache()
            return self.serve_error()
        try:
            return self.generate()
        except Exception as exc:
            logger.warning("[image_delivery] render failed for %s: %s", self.files.source_path, exc)
            self._apply_fallback_size()
            return self.serve_error()

    def generate(self) -> ImageReply:
        source_fmt = detect_type_from_file(self.files.source_path)
        if source_fmt is None:
            raise UnsupportedFormatError(f"Unknown type of file '{self.files.source_path}'.")
        fmt = ImageFormat.WEBP if self.webp else source_fmt
        path = self.files.cache_file(self.webp)

        with RasterImage.from_file(self.files.source_path) as source:
            with render_variant(source, self.options) as image:
                data = image.save(path, self.options.quality, fmt)

        logger.info("[image_delivery] generated %s (%s, %d bytes)", path, fmt.value, len(data))
        return self._reply(data, fmt, self.request.request_time, "generated")

    def serve_error(self) -> ImageReply:
        try:
            return self._serve_placeholder()
        except Exception:
            logger.exception("[image_delivery] placeholder failed for %s", self.files.source_path)
            return self._reply(EMPTY_GIF, ImageFormat.GIF, self.request.request_time, "empty")

    def _serve_placeholder(self) -> ImageReply:
        if not self.options.missing_placeholder:
            return self._reply(EMPTY_GIF, ImageFormat.GIF, self.request.request_time, "empty")

        fmt = ImageFormat.WEBP if self.webp else ImageFormat.PNG
        path = self.files.placeholder_file(self.webp)
        if path.is_file():
            logger.debug("[image_delivery] cached placeholder %s", path)
            return self._reply(path.read_bytes(), fmt, file_mtime(path) or self.request.request_time, "error_served")

        with build_placeholder(self.options, self.config.ERROR_ICON_PATH, self.config.PLACEHOLDER_SIZE) as image:
            data = image.encode(fmt, self.options.quality)
        try:
            write_bytes_atomic(path, data)
        except OSError as exc:
            logger.warning("[image_delivery] could not cache placeholder %s: %s", path, exc)
        return self._reply(data, fmt, self.request.request_time, "error_served")


def deliver_image(
    files: FileContext,
    options: RenderOptions,
    request: RequestContext,
    config: Settings = default_settings,
) -> ImageReply:
    return ImageDelivery(files, options, request, config).run()
