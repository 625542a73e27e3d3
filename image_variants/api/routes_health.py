from pathlib import Path

from fastapi import APIRouter, Query

from ..core.config import settings
from ..core.log_buffer import get_log_entries
from ..core.storage import CACHE_DIR

router = APIRouter()


@router.get("/health")
def health_check():
    """Storage availability and the limits requests are clamped to."""
    storage_root = Path(settings.STORAGE_ROOT)
    cache_root = storage_root / CACHE_DIR
    return {
        "status": "ok",
        "storage": {
            "root": str(storage_root),
            "exists": storage_root.is_dir(),
            "cache_exists": cache_root.is_dir(),
        },
        "limits": {
            "min_width": settings.MIN_WIDTH,
            "min_height": settings.MIN_HEIGHT,
            "max_width": settings.MAX_WIDTH,
            "max_height": settings.MAX_HEIGHT,
        },
        "cache_lifetime_seconds": settings.CACHE_LIFETIME_SECONDS,
    }


@router.get("/health/logs")
def recent_logs(
    since_id: int | None = Query(None, ge=0),
    limit: int = Query(200, ge=1, le=2000),
):
    entries, last_id = get_log_entries(since_id, limit)
    return {"entries": entries, "last_id": last_id}
