from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.images import router as images_router
from .api.routes_health import router as health_router
from .core.config import settings
from .core.log_buffer import install_log_buffer

app = FastAPI(title="Image Variants", description="On-demand thumbnails, crops and canvas renders")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

install_log_buffer()

app.include_router(health_router)
app.include_router(images_router)
