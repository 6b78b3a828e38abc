"""Tests for the homework processing service."""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from ..adapters import ImageAdapter, OcrResult
from ..errors import ContentProcessingError, InvalidFileError
from ..feedback import FeedbackGenerator
from ..service import HomeworkProcessor


@pytest.fixture
def processor():
    return HomeworkProcessor(
        image_adapter=ImageAdapter(client=MagicMock()),
        feedback_generator=FeedbackGenerator(client=MagicMock()),
        max_image_bytes=4096,
    )


class TestValidateUpload:
    def test_accepts_png(self, processor, png_bytes):
        processor.validate_upload(png_bytes, "image/png", "page.png")

    def test_content_type_is_optional(self, processor, png_bytes):
        processor.validate_upload(png_bytes, None)

    def test_empty(self, processor):
        with pytest.raises(InvalidFileError) as exc:
            processor.validate_upload(b"", "image/png", "page.png")
        assert exc.value.filename == "page.png"

    def test_too_large(self, processor):
        with pytest.raises(ContentProcessingError) as exc:
            processor.validate_upload(b"x" * 5000, "image/png")
        assert "exceeds maximum allowed size" in exc.value.message

    @pytest.mark.parametrize("content_type", ["application/pdf", "text/plain"])
    def test_unsupported_type(self, processor, png_bytes, content_type):
        with pytest.raises(InvalidFileError) as exc:
            processor.validate_upload(png_bytes, content_type)
        assert content_type in exc.value.message

    def test_not_an_image(self, processor):
        with pytest.raises(InvalidFileError):
            processor.validate_upload(b"\x89PNG\r\n\x1a\n broken", "image/png")


class TestDelegation:
    @pytest.mark.asyncio
    async def test_extract_text_decodes_data_uri(self, processor, png_bytes):
        processor.image_adapter.extract_text = AsyncMock(return_value=OcrResult(text="hi", confidence=0.5))
        uri = f"data:image/png;base64,{base64.b64encode(png_bytes).decode()}"

        result = await processor.extract_text(uri)

        assert result.text == "hi"
        processor.image_adapter.extract_text.assert_awaited_once_with(png_bytes)

    @pytest.mark.asyncio
    async def test_extract_text_enforces_size(self, processor):
        processor.image_adapter.extract_text = AsyncMock()

        with pytest.raises(InvalidFileError):
            await processor.extract_text(b"x" * 5000)
        processor.image_adapter.extract_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generate_feedback(self, processor):
        processor.feedback_generator.generate = AsyncMock(return_value="Nice work")

        feedback = await processor.generate_feedback("I has a cat.", "Beginner", "Children")

        assert feedback == "Nice work"
        processor.feedback_generator.generate.assert_awaited_once_with("I has a cat.", "Beginner", "Children")


def test_from_env(monkeypatch):
    monkeypatch.setenv("OCR_ENGINE", "tesseract")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_env")

    processor = HomeworkProcessor.from_env(max_image_bytes=1024)

    assert processor.max_image_bytes == 1024
    assert processor.image_adapter.model_config.model_type.value == "tesseract"
    assert processor.feedback_generator.config.assistant_id == "asst_env"
