"""
Homework Processing Service

Turns a homework image into extracted text and feedback by combining the
image adapter (OCR) with the feedback generator. The API gateway depends on
this class only, so both engines can be swapped or faked in one place.

Example:
    >>> processor = HomeworkProcessor.from_env()
    >>> ocr = await processor.extract_text(image_base64)
    >>> feedback = await processor.generate_feedback(ocr.text, "Beginner", "Children")
"""

import logging
import time
from typing import Optional, Union

from .adapters import ImageAdapter, OcrResult, VisionModelConfig, decode_image_payload, get_adapter
from .errors import ContentProcessingError, InvalidFileError
from .feedback import FeedbackConfig, FeedbackGenerator

logger = logging.getLogger(__name__)


class HomeworkProcessor:
    """
    OCR plus feedback for homework submissions.

    Args:
        image_adapter: Adapter used for text extraction.
        feedback_generator: Generator used for feedback.
        max_image_bytes: Maximum accepted image size in bytes (default: 10MB).
    """

    def __init__(
        self,
        image_adapter: Optional[ImageAdapter] = None,
        feedback_generator: Optional[FeedbackGenerator] = None,
        max_image_bytes: int = 10 * 1024 * 1024,
    ):
        self.image_adapter = image_adapter or ImageAdapter()
        self.feedback_generator = feedback_generator or FeedbackGenerator()
        self.max_image_bytes = max_image_bytes

    @classmethod
    def from_env(cls, max_image_bytes: int = 10 * 1024 * 1024) -> "HomeworkProcessor":
        return cls(
            image_adapter=ImageAdapter(model_config=VisionModelConfig.from_env()),
            feedback_generator=FeedbackGenerator(config=FeedbackConfig.from_env()),
            max_image_bytes=max_image_bytes,
        )

    def validate_upload(self, data: bytes, content_type: Optional[str], filename: str = "upload") -> None:
        """Reject uploads that are too large, not images, or not decodable."""
        if not data:
            raise InvalidFileError(filename=filename, message="Uploaded file is empty")
        if len(data) > self.max_image_bytes:
            raise ContentProcessingError(
                f"File size {len(data)} exceeds maximum allowed size of {self.max_image_bytes} bytes"
            )
        if content_type and get_adapter(content_type) is None:
            raise InvalidFileError(filename=filename, message=f"Unsupported file type: {content_type}")
        if not self.image_adapter.is_valid(data):
            raise InvalidFileError(filename=filename, message="File is not a valid image")

    async def extract_text(self, image: Union[str, bytes]) -> OcrResult:
        """Run OCR on image bytes, base64 or a data URI."""
        start_time = time.time()
        data = decode_image_payload(image)
        if len(data) > self.max_image_bytes:
            raise InvalidFileError(
                message=f"Image of {len(data)} bytes exceeds the {self.max_image_bytes} byte limit"
            )
        result = await self.image_adapter.extract_text(data)
        logger.info(f"OCR finished in {time.time() - start_time:.2f}s")
        return result

    async def generate_feedback(self, text: str, english_level: str, age_group: str) -> str:
        start_time = time.time()
        feedback = await self.feedback_generator.generate(text, english_level, age_group)
        logger.info(f"Feedback finished in {time.time() - start_time:.2f}s")
        return feedback
