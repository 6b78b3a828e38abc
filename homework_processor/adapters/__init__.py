"""
Content adapters for homework uploads.

Only photographed or scanned pages are accepted, so the image adapter is the
single adapter; errors are shared with the rest of the package.
"""

from ..errors import ContentProcessingError, InvalidFileError
from .image_adapter import ImageAdapter, OcrResult, VisionModelConfig, VisionModelType, decode_image_payload


def get_adapter(mime_type: str, **kwargs):
    """Return an adapter able to handle ``mime_type``, or None."""
    if mime_type in ImageAdapter.supported_mime_types():
        return ImageAdapter(**kwargs)
    return None


__all__ = [
    "ContentProcessingError",
    "InvalidFileError",
    "ImageAdapter",
    "OcrResult",
    "VisionModelConfig",
    "VisionModelType",
    "decode_image_payload",
    "get_adapter",
]
