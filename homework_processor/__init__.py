"""Homework content processing: OCR and AI feedback.

Loads environment variables from a local .env file to support local
development and testing without external configuration.
"""

from pathlib import Path

from dotenv import load_dotenv


def _load_local_env():
    # Try homework_processor/.env first, then project root .env
    pkg_dir = Path(__file__).resolve().parent
    candidates = [
        pkg_dir / ".env",
        pkg_dir.parent / ".env",
    ]
    for p in candidates:
        if p.exists():
            load_dotenv(dotenv_path=p, override=False)


_load_local_env()

from .errors import (  # noqa: E402
    ContentProcessingError,
    ExternalServiceError,
    InvalidFileError,
    MalformedResponseError,
    ProviderTimeoutError,
    QuotaExceededError,
)
from .adapters import ImageAdapter, OcrResult, VisionModelConfig  # noqa: E402
from .feedback import FeedbackConfig, FeedbackGenerator  # noqa: E402
from .service import HomeworkProcessor  # noqa: E402

__all__ = [
    "ContentProcessingError",
    "ExternalServiceError",
    "InvalidFileError",
    "MalformedResponseError",
    "ProviderTimeoutError",
    "QuotaExceededError",
    "ImageAdapter",
    "OcrResult",
    "VisionModelConfig",
    "FeedbackConfig",
    "FeedbackGenerator",
    "HomeworkProcessor",
]
