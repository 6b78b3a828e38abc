"""
Pedagogical feedback generation.

Feedback is produced either by a configured OpenAI assistant (thread + run,
polled until it finishes) or, when no assistant is configured, by a single
chat completion.
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional, Union

import openai
from pydantic import BaseModel, Field

from .errors import (
    ExternalServiceError,
    MalformedResponseError,
    ProviderTimeoutError,
    QuotaExceededError,
    provider_error,
)

logger = logging.getLogger(__name__)

TERMINAL_FAILURE_STATUSES = ("failed", "cancelled", "expired")

FEEDBACK_SYSTEM_PROMPT = """You are an experienced English teacher at a language school.
Review the student's homework and write feedback the student can act on.
Adapt vocabulary, tone and depth to the student's English level and age group.
Point out the most important mistakes with corrected versions, explain why,
and finish with one or two concrete suggestions and some encouragement."""


def feedback_request(text: str, english_level: str, age_group: str) -> str:
    return (
        "Please provide feedback on the following text:\n"
        "Student Profile:\n"
        f"- English Level: {english_level}\n"
        f"- Age Group: {age_group}\n\n"
        "Text to Review:\n"
        f"{text}\n"
    )


class FeedbackConfig(BaseModel):
    """Configuration for feedback generation."""
    model_name: str = Field(
        default="gpt-4o",
        description="Chat model used when no assistant is configured"
    )
    assistant_id: Optional[str] = Field(
        default=None,
        description="OpenAI assistant that writes the feedback"
    )
    api_base: Optional[str] = Field(
        default=None,
        description="Base URL for the API (for local models or custom endpoints)"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key; falls back to OPENAI_API_KEY"
    )
    poll_interval: float = Field(
        default=1.0,
        description="Seconds between assistant run status checks"
    )
    max_poll_attempts: int = Field(
        default=60,
        description="Status checks before the run is considered timed out"
    )
    temperature: float = Field(
        default=0.4,
        description="Sampling temperature for chat completions"
    )
    timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for individual API requests"
    )

    @classmethod
    def from_env(cls) -> "FeedbackConfig":
        return cls(
            model_name=os.getenv("FEEDBACK_MODEL", "gpt-4o"),
            assistant_id=os.getenv("OPENAI_ASSISTANT_ID") or None,
            api_base=os.getenv("OPENAI_BASE_URL") or None,
            api_key=os.getenv("OPENAI_API_KEY") or None,
            poll_interval=float(os.getenv("FEEDBACK_POLL_INTERVAL", "1.0")),
            max_poll_attempts=int(os.getenv("FEEDBACK_MAX_POLL_ATTEMPTS", "60")),
        )


class FeedbackGenerator:
    """Writes level- and age-appropriate feedback for extracted homework text."""

    def __init__(
        self,
        config: Optional[Union[Dict[str, Any], FeedbackConfig]] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        if config is None:
            self.config = FeedbackConfig()
        elif isinstance(config, dict):
            self.config = FeedbackConfig(**config)
        else:
            self.config = config
        self._client = client

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            client_kwargs: Dict[str, Any] = {"timeout": self.config.timeout}
            if self.config.api_base:
                client_kwargs["base_url"] = self.config.api_base
            if self.config.api_key:
                client_kwargs["api_key"] = self.config.api_key
            self._client = openai.AsyncOpenAI(**client_kwargs)
        return self._client

    async def generate(self, text: str, english_level: str, age_group: str) -> str:
        """Return free-form feedback for ``text``."""
        try:
            if self.config.assistant_id:
                feedback = await self._generate_with_assistant(text, english_level, age_group)
            else:
                feedback = await self._generate_with_chat(text, english_level, age_group)
        except openai.OpenAIError as e:
            raise provider_error(e, "generate feedback") from e
        logger.info(f"Generated {len(feedback)} characters of feedback ({english_level}, {age_group})")
        return feedback

    async def _generate_with_chat(self, text: str, english_level: str, age_group: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.config.model_name,
            messages=[
                {"role": "system", "content": FEEDBACK_SYSTEM_PROMPT},
                {"role": "user", "content": feedback_request(text, english_level, age_group)},
            ],
            temperature=self.config.temperature,
        )
        if not response.choices or not (response.choices[0].message.content or "").strip():
            raise MalformedResponseError("No feedback received from model")
        return response.choices[0].message.content.strip()

    async def _generate_with_assistant(self, text: str, english_level: str, age_group: str) -> str:
        threads = self.client.beta.threads
        thread = await threads.create()
        await threads.messages.create(
            thread_id=thread.id,
            role="user",
            content=feedback_request(text, english_level, age_group),
        )
        run = await threads.runs.create(thread_id=thread.id, assistant_id=self.config.assistant_id)
        await self.wait_for_run_completion(thread.id, run.id)

        messages = await threads.messages.list(thread_id=thread.id, order="desc")
        for message in messages.data:
            if message.role != "assistant":
                continue
            for block in message.content:
                if getattr(block, "type", None) == "text" and block.text.value.strip():
                    return block.text.value.strip()
        raise MalformedResponseError("No feedback received from assistant")

    async def wait_for_run_completion(self, thread_id: str, run_id: str):
        """Poll an assistant run until it completes.

        Raises:
            QuotaExceededError: The run stopped on the provider's rate limit.
            ExternalServiceError: The run failed, was cancelled or expired.
            ProviderTimeoutError: The run did not finish within the attempt budget.
        """
        for attempt in range(self.config.max_poll_attempts):
            run = await self.client.beta.threads.runs.retrieve(run_id=run_id, thread_id=thread_id)

            if run.status == "completed":
                logger.debug(f"Run {run_id} completed after {attempt + 1} checks")
                return run

            if run.status in TERMINAL_FAILURE_STATUSES:
                last_error = getattr(run, "last_error", None)
                if last_error is not None and getattr(last_error, "code", None) == "rate_limit_exceeded":
                    raise QuotaExceededError()
                raise ExternalServiceError(f"Run failed with status: {run.status}")

            await asyncio.sleep(self.config.poll_interval)

        raise ProviderTimeoutError(
            f"Timeout waiting for run completion after {self.config.max_poll_attempts} attempts"
        )
