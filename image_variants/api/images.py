"""
Image variant endpoints.

``/images/{module}/{storage_type}/{item_id}/{args}/{filename}`` serves a
variant of ``filename`` rendered according to ``args`` (``w600-h400-z1``).
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from ..core.config import settings
from ..core.options import resolve_options
from ..core.request_context import RequestContext
from ..core.storage import DirectoryContext, FileContext
from ..services.image_delivery import ImageReply, deliver_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])


def _to_response(reply: ImageReply) -> Response:
    return Response(content=reply.content, status_code=reply.status_code, headers=reply.headers)


async def _serve(
    request: Request,
    module: str,
    storage_type: str,
    item_id: str,
    filename: str,
    args: Optional[str],
    original: bool,
) -> Response:
    directory = DirectoryContext.build(
        level=settings.DIRECTORY_LEVEL,
        storage_type=storage_type,
        module=module,
        item_id=item_id,
        root=settings.STORAGE_ROOT,
        aliases=settings.MODULE_ALIASES,
    )
    options = resolve_options(args, original=original)
    files = FileContext.build(directory, options, filename)
    context = RequestContext.from_request(request)

    if settings.RENDER_IN_THREAD:
        reply = await asyncio.to_thread(deliver_image, files, options, context)
    else:
        reply = deliver_image(files, options, context)
    logger.debug("[images] %s -> %s (%d)", request.url.path, reply.outcome, reply.status_code)
    return _to_response(reply)


@router.get("/{module}/{storage_type}/{item_id}/{args}/{filename}")
async def image_variant(
    request: Request,
    module: str,
    storage_type: str,
    item_id: str,
    args: str,
    filename: str,
    original: bool = Query(False, description="Serve the source geometry untouched"),
):
    return await _serve(request, module, storage_type, item_id, filename, args, original)


@router.get("/{module}/{storage_type}/{item_id}/{filename}")
async def image_default_variant(
    request: Request,
    module: str,
    storage_type: str,
    item_id: str,
    filename: str,
    original: bool = Query(False, description="Serve the source geometry untouched"),
):
    return await _serve(request, module, storage_type, item_id, filename, None, original)
