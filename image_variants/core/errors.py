"""
Exceptions raised by the image pipeline.

Only the delivery orchestrator catches these; everything below it lets them
propagate so the request can fall back to the placeholder image.
"""


class ImageError(Exception):
    """Base error for anything that prevents a variant from being rendered."""
    pass


class GeometryError(ImageError, ValueError):
    """Impossible resize/crop request or malformed dimension literal."""
    pass


class UnsupportedFormatError(ImageError):
    """File type or extension outside JPEG/PNG/GIF/WebP."""
    pass


class SourceDecodeError(ImageError):
    """Source file is missing, unreadable or not a decodable image."""
    pass


class EncodeError(ImageError):
    """Encoder failed or produced no output."""
    pass
