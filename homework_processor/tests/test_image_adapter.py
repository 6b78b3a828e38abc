"""Tests for the homework image adapter."""

import base64
from unittest.mock import patch

import httpx
import openai
import pytest
from PIL import Image

from ..adapters.image_adapter import ImageAdapter, OcrResult, VisionModelConfig, VisionModelType, decode_image_payload
from ..errors import InvalidFileError, MalformedResponseError, ProviderTimeoutError, QuotaExceededError
from .conftest import chat_response

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class TestOcrResult:
    @pytest.mark.parametrize("raw, expected", [
        (0.87, 0.87),
        (1.7, 1.0),
        (-0.2, 0.0),
        ("0.5", 0.5),
        ("high", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
    ])
    def test_confidence_is_clamped(self, raw, expected):
        assert OcrResult(text="x", confidence=raw).confidence == pytest.approx(expected)


class TestParseResponse:
    def test_valid(self):
        result = ImageAdapter.parse_ocr_response('{"text": "## Question 1\\nI has a cat.", "confidence": 0.9}')
        assert result.text.startswith("## Question 1")
        assert result.confidence == pytest.approx(0.9)

    def test_missing_text_is_empty(self):
        assert ImageAdapter.parse_ocr_response('{"confidence": 0.4}').text == ""

    @pytest.mark.parametrize("content", [None, "", "not json", "[1, 2]", '{"text": 42}'])
    def test_malformed(self, content):
        with pytest.raises(MalformedResponseError):
            ImageAdapter.parse_ocr_response(content)


class TestDecodePayload:
    def test_data_uri(self, png_bytes):
        uri = f"data:image/png;base64,{base64.b64encode(png_bytes).decode()}"
        assert decode_image_payload(uri) == png_bytes

    @pytest.mark.parametrize("payload", [b"", "", "%%%not-base64%%%"])
    def test_rejects_empty_and_garbage(self, payload):
        with pytest.raises(InvalidFileError):
            decode_image_payload(payload)


class TestImageAdapter:
    def test_is_valid(self, png_bytes):
        adapter = ImageAdapter()
        assert adapter.is_valid(png_bytes)
        assert not adapter.is_valid(b"GIF89a-truncated")

    def test_large_images_are_downscaled(self):
        adapter = ImageAdapter(model_config={"max_image_side": 100})
        prepared = adapter._prepare_image(Image.new("RGBA", (400, 200)))
        assert prepared.size == (100, 50)
        assert prepared.mode == "RGB"

    @pytest.mark.asyncio
    async def test_extract_with_openai(self, png_bytes, openai_client):
        openai_client.chat.completions.create.return_value = chat_response(
            '{"text": "*Student Answer:* I has a cat.", "confidence": 0.91}'
        )
        adapter = ImageAdapter(model_config=VisionModelConfig(model_name="gpt-4o-mini"), client=openai_client)

        result = await adapter.extract_text(png_bytes)

        assert result.text == "*Student Answer:* I has a cat."
        assert result.confidence == pytest.approx(0.91)
        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        image_part = kwargs["messages"][1]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_empty_input_never_reaches_provider(self, openai_client):
        adapter = ImageAdapter(client=openai_client)

        with pytest.raises(InvalidFileError):
            await adapter.extract_text(b"")
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_maps_to_quota(self, png_bytes, openai_client):
        openai_client.chat.completions.create.side_effect = openai.RateLimitError(
            "rate", response=httpx.Response(429, request=OPENAI_REQUEST), body=None
        )
        adapter = ImageAdapter(client=openai_client)

        with pytest.raises(QuotaExceededError) as exc:
            await adapter.extract_text(png_bytes)
        assert exc.value.message == "AI quota exceeded, please try again later"
        assert exc.value.category == "quota_exceeded"

    @pytest.mark.asyncio
    async def test_request_timeout(self, png_bytes, openai_client):
        openai_client.chat.completions.create.side_effect = openai.APITimeoutError(request=OPENAI_REQUEST)
        adapter = ImageAdapter(client=openai_client)

        with pytest.raises(ProviderTimeoutError):
            await adapter.extract_text(png_bytes)

    @pytest.mark.asyncio
    async def test_no_choices(self, png_bytes, openai_client):
        openai_client.chat.completions.create.return_value = chat_response("{}")
        openai_client.chat.completions.create.return_value.choices = []
        adapter = ImageAdapter(client=openai_client)

        with pytest.raises(MalformedResponseError):
            await adapter.extract_text(png_bytes)

    @pytest.mark.asyncio
    async def test_extract_with_tesseract(self, png_bytes):
        adapter = ImageAdapter(model_config={"model_type": VisionModelType.TESSERACT})

        with patch("homework_processor.adapters.image_adapter.pytesseract.image_to_string",
                   return_value="  I has a cat.\n"), \
                patch("homework_processor.adapters.image_adapter.pytesseract.image_to_data",
                      return_value={"conf": ["90", "-1", "70"]}):
            result = await adapter.extract_text(png_bytes)

        assert result.text == "I has a cat."
        assert result.confidence == pytest.approx(0.8)
