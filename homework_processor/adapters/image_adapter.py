"""
Homework image adapter with OCR support.
Supports the OpenAI vision API (default) and local Tesseract OCR.
"""

import asyncio
import base64
import binascii
import io
import json
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional, Union

import openai
import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError
from pydantic import BaseModel, Field, field_validator

from ..errors import (
    ContentProcessingError,
    InvalidFileError,
    MalformedResponseError,
    provider_error,
)

logger = logging.getLogger(__name__)

OCR_SYSTEM_PROMPT = """You transcribe English-language homework from photos.
Return the transcription as markdown:
- '## Question' headings for questions printed in the textbook or worksheet
- '**Textbook Content:**' before printed source text
- '*Student Answer:*' before the student's handwriting
- keep the student's line breaks, spelling and mistakes exactly as written

Respond with a JSON object of the form
{"text": "<markdown transcription>", "confidence": <number between 0 and 1>}"""


class VisionModelType(str, Enum):
    OPENAI = "openai"
    TESSERACT = "tesseract"


class OcrResult(BaseModel):
    """Text extracted from one homework image."""
    text: str = ""
    confidence: float = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if value != value:  # NaN
            return 0.0
        return max(0.0, min(1.0, value))


class VisionModelConfig(BaseModel):
    """Configuration for the OCR engine.

    Any OpenAI-compatible endpoint can be used by setting ``api_base``.
    """
    model_type: VisionModelType = Field(
        default=VisionModelType.OPENAI,
        description="OCR engine to use"
    )
    model_name: str = Field(
        default="gpt-4o",
        description="Vision model name for the OpenAI engine"
    )
    api_base: Optional[str] = Field(
        default=None,
        description="Base URL for the API (for local models or custom endpoints)"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key; falls back to OPENAI_API_KEY"
    )
    max_tokens: int = Field(
        default=2000,
        description="Maximum number of tokens to generate"
    )
    temperature: float = Field(
        default=0.0,
        description="Sampling temperature (0-2)"
    )
    max_image_side: int = Field(
        default=2048,
        description="Images are downscaled so their longest side fits this many pixels"
    )
    tesseract_lang: str = Field(
        default="eng",
        description="Language passed to Tesseract"
    )
    timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for API requests"
    )

    @classmethod
    def from_env(cls) -> "VisionModelConfig":
        return cls(
            model_type=VisionModelType(os.getenv("OCR_ENGINE", VisionModelType.OPENAI.value)),
            model_name=os.getenv("OCR_MODEL", "gpt-4o"),
            api_base=os.getenv("OPENAI_BASE_URL") or None,
            api_key=os.getenv("OPENAI_API_KEY") or None,
            max_image_side=int(os.getenv("OCR_MAX_IMAGE_SIDE", "2048")),
            tesseract_lang=os.getenv("OCR_TESSERACT_LANG", "eng"),
            timeout=float(os.getenv("OCR_TIMEOUT", "60")),
        )


def decode_image_payload(payload: Union[str, bytes]) -> bytes:
    """Decode raw bytes, a base64 string or a ``data:`` URI into image bytes."""
    if isinstance(payload, bytes):
        data = payload
    else:
        encoded = (payload or "").strip()
        if encoded.startswith("data:"):
            encoded = encoded.split(";base64,", 1)[-1]
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidFileError(message=f"Image is not valid base64: {e}") from e
    if not data:
        raise InvalidFileError(message="Image is empty")
    return data


class ImageAdapter:
    """Extracts homework text from images."""

    SUPPORTED_TYPES = [
        'image/jpeg',
        'image/png',
        'image/gif',
        'image/webp',
        'image/bmp',
        'image/tiff',
    ]

    def __init__(
        self,
        tesseract_path: Optional[str] = None,
        model_config: Optional[Union[Dict[str, Any], VisionModelConfig]] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        """
        Initialize the ImageAdapter.

        Args:
            tesseract_path: Path to Tesseract executable (if not in PATH)
            model_config: Configuration for the OCR engine. Can be:
                - A dictionary that will be converted to VisionModelConfig
                - A VisionModelConfig instance
                - None to use defaults
            client: Preconfigured OpenAI client, mainly for tests
        """
        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path

        if model_config is None:
            self.model_config = VisionModelConfig()
        elif isinstance(model_config, dict):
            self.model_config = VisionModelConfig(**model_config)
        else:
            self.model_config = model_config

        self._openai_client = client

    @classmethod
    def supported_mime_types(cls):
        return cls.SUPPORTED_TYPES

    @property
    def openai_client(self) -> openai.AsyncOpenAI:
        """Lazy load the OpenAI client."""
        if self._openai_client is None:
            client_kwargs: Dict[str, Any] = {"timeout": self.model_config.timeout}
            if self.model_config.api_base:
                client_kwargs["base_url"] = self.model_config.api_base
            if self.model_config.api_key:
                client_kwargs["api_key"] = self.model_config.api_key
            self._openai_client = openai.AsyncOpenAI(**client_kwargs)
        return self._openai_client

    # -------- Image handling --------
    def load_image(self, data: bytes) -> Image.Image:
        """Open and verify image bytes, raising InvalidFileError when unreadable."""
        if not data:
            raise InvalidFileError(message="Image is empty")
        try:
            with Image.open(io.BytesIO(data)) as probe:
                probe.verify()
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise InvalidFileError(message=f"Unreadable image: {e}") from e
        return image

    def is_valid(self, data: bytes) -> bool:
        try:
            self.load_image(data)
            return True
        except InvalidFileError:
            return False

    def _prepare_image(self, image: Image.Image) -> Image.Image:
        """EXIF auto-orient, drop alpha and downscale oversized photos."""
        try:
            image = ImageOps.exif_transpose(image)
        except (OSError, ValueError, TypeError):
            pass
        image = image.convert("RGB")
        side = self.model_config.max_image_side
        if max(image.size) > side:
            original = image.size
            image = image.copy()
            image.thumbnail((side, side))
            logger.debug(f"Downscaled image from {original} to {image.size}")
        return image

    def _decode_and_prepare(self, payload: Union[str, bytes]) -> Image.Image:
        return self._prepare_image(self.load_image(decode_image_payload(payload)))

    def _image_to_base64(self, image: Image.Image) -> str:
        """Convert PIL Image to a base64 JPEG string."""
        buffered = io.BytesIO()
        image.save(buffered, format="JPEG", quality=90)
        return base64.b64encode(buffered.getvalue()).decode("utf-8")

    # -------- Engines --------
    async def _extract_with_openai(self, image: Image.Image) -> OcrResult:
        base64_image = await asyncio.to_thread(self._image_to_base64, image)
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.model_config.model_name,
                messages=[
                    {"role": "system", "content": OCR_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": "Transcribe this homework page."},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:image/jpeg;base64,{base64_image}"},
                            },
                        ],
                    },
                ],
                response_format={"type": "json_object"},
                max_tokens=self.model_config.max_tokens,
                temperature=self.model_config.temperature,
            )
        except openai.OpenAIError as e:
            raise provider_error(e, "analyze image") from e

        if not response.choices:
            raise MalformedResponseError("No choices in vision API response")
        content = response.choices[0].message.content
        return self.parse_ocr_response(content)

    @staticmethod
    def parse_ocr_response(content: Optional[str]) -> OcrResult:
        """Parse the JSON body returned by the vision model."""
        if not content:
            raise MalformedResponseError("Empty content in vision API response")
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Failed to parse response JSON from vision API: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedResponseError("Vision API response is not a JSON object")
        text = payload.get("text")
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise MalformedResponseError("Vision API response field 'text' is not a string")
        return OcrResult(text=text, confidence=payload.get("confidence", 0.0))

    def _tesseract_confidence(self, image: Image.Image, **kwargs) -> float:
        """Compute mean confidence from Tesseract data output in [0,1]."""
        data = pytesseract.image_to_data(image, output_type=pytesseract.Output.DICT, **kwargs)
        confs = [float(c) for c in data.get('conf', []) if c not in ("-1", -1, None)]
        if not confs:
            return 0.0
        return sum(confs) / len(confs) / 100.0

    def _run_tesseract(self, image: Image.Image) -> OcrResult:
        lang = self.model_config.tesseract_lang
        gray = image.convert("L")
        try:
            text = pytesseract.image_to_string(gray, lang=lang)
            confidence = self._tesseract_confidence(gray, lang=lang)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            raise ContentProcessingError(f"Tesseract OCR failed: {e}") from e
        return OcrResult(text=text.strip(), confidence=confidence)

    async def _extract_with_tesseract(self, image: Image.Image) -> OcrResult:
        return await asyncio.to_thread(self._run_tesseract, image)

    async def extract_text(self, payload: Union[str, bytes]) -> OcrResult:
        """
        Extract homework text from an image.

        Args:
            payload: Image bytes, base64 string or data URI

        Returns:
            OcrResult with the markdown text and a confidence in [0, 1]

        Raises:
            InvalidFileError: The payload is empty or not an image.
            ExternalServiceError: The provider failed or answered nonsense.
        """
        image = await asyncio.to_thread(self._decode_and_prepare, payload)

        if self.model_config.model_type == VisionModelType.TESSERACT:
            result = await self._extract_with_tesseract(image)
        else:
            result = await self._extract_with_openai(image)

        logger.info(
            f"Extracted {len(result.text)} characters with {self.model_config.model_type.value} "
            f"(confidence {result.confidence:.2f})"
        )
        return result
