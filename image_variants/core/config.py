from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Load env from .env file
    model_config = {"env_file": ".env"}

    # Storage layout
    STORAGE_ROOT: str = "storage"
    DIRECTORY_LEVEL: int = 4  # hex digits used for the per-item directory split

    # Option limits applied to w/h tokens
    MIN_WIDTH: int = 50
    MIN_HEIGHT: int = 50
    MAX_WIDTH: int = 2560
    MAX_HEIGHT: int = 2560

    # HTTP caching
    CACHE_LIFETIME_SECONDS: int = 31536000  # one year
    COMPONENT_HEADER: str = "Image Variants"

    # Placeholder rendering
    PLACEHOLDER_SIZE: int = 600
    ERROR_ICON_PATH: Optional[str] = None  # custom "broken image" icon, optional

    # Runtime
    RENDER_IN_THREAD: bool = True
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Module aliases for the directory layout; unknown ids pass through
    MODULE_ALIASES: dict[str, str] = {
        "template": "template",
        "thumbnail": "1",
        "gallery": "2",
        "editor": "5",
    }

# Instantiate settings
settings = Settings()
