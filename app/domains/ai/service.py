"""AI service layer with Google Gemini streaming integration."""

import asyncio
import base64
import json
import logging
import re
from collections.abc import AsyncIterator, Sequence
from typing import Any, TypedDict

import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    AITimeoutError,
    map_ai_error,
)
from app.schemas.chat import FilePart, TextPart, UIMessage
from models.message import MessageRole


logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<media_type>[^;,]+)?(?P<params>(;[^;,]+)*),(?P<data>.*)$", re.DOTALL)

SUGGESTIONS_PROMPT = "What question should I ask next? Return an array of 2-3 suggested questions."
MAX_SUGGESTIONS = 3


class FollowupSuggestions(TypedDict):
    """Response schema for follow-up question suggestions."""

    suggestions: list[str]


def file_part_to_content(part: FilePart) -> dict[str, Any]:
    """Convert a file part into a Gemini content part.

    Data URLs are decoded and sent inline; any other URL is passed by
    reference.
    """
    match = DATA_URL_PATTERN.match(part.url)
    if match is None:
        return {"file_data": {"mime_type": part.media_type, "file_uri": part.url}}

    payload = match.group("data")
    if ";base64" in (match.group("params") or ""):
        data = base64.b64decode(payload)
    else:
        data = payload.encode("utf-8")
    return {"inline_data": {"mime_type": part.media_type, "data": data}}


def to_model_contents(messages: Sequence[UIMessage]) -> tuple[str | None, list[dict[str, Any]]]:
    """Convert UI messages into a Gemini system instruction and contents.

    System messages become the system instruction. Reasoning, source and step
    parts are display-only and are not sent back to the model.

    Returns:
        Tuple of (system instruction or None, list of role-tagged contents)
    """
    system_texts: list[str] = []
    contents: list[dict[str, Any]] = []

    for message in messages:
        if message.role == MessageRole.SYSTEM:
            system_texts.extend(part.text for part in message.parts if isinstance(part, TextPart))
            continue

        content_parts: list[dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, TextPart):
                content_parts.append({"text": part.text})
            elif isinstance(part, FilePart):
                content_parts.append(file_part_to_content(part))

        if content_parts:
            role = "user" if message.role == MessageRole.USER else "model"
            contents.append({"role": role, "parts": content_parts})

    return ("\n\n".join(system_texts) or None), contents


class AIService:
    """Streams chat replies from Google Gemini."""

    SAFETY_SETTINGS = {
        HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    }

    def __init__(self):
        """Initialize AI service and configure the Gemini client."""
        self.model_name = settings.gemini_model
        self.model = None
        self._initialize_client()

    def _initialize_client(self):
        """Initialize Google Gemini client."""
        if not settings.gemini_api_key:
            raise AIConfigurationError("Gemini API key not configured")

        try:
            genai.configure(api_key=settings.gemini_api_key)
            self.model = self._build_model()
            logger.info(f"✅ Google Gemini client initialized with model: {self.model_name}")
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {str(e)}")
            raise AIConfigurationError(f"Failed to initialize AI service: {str(e)}") from e

    def _build_model(self, system_instruction: str | None = None, response_schema=None):
        """Create a Gemini model with the configured safety and generation settings.

        With a ``response_schema`` the model answers with JSON matching it.
        """
        config: dict[str, Any] = {
            "candidate_count": 1,
            "max_output_tokens": settings.gemini_max_tokens,
            "temperature": settings.gemini_temperature,
        }
        if response_schema is not None:
            config["response_mime_type"] = "application/json"
            config["response_schema"] = response_schema

        return genai.GenerativeModel(
            model_name=self.model_name,
            safety_settings=self.SAFETY_SETTINGS,
            generation_config=genai.types.GenerationConfig(**config),
            system_instruction=system_instruction,
        )

    async def stream_text(self, messages: Sequence[UIMessage]) -> AsyncIterator[str]:
        """Stream the reply to a conversation as text deltas.

        Args:
            messages: Ordered conversation history, oldest first

        Yields:
            Text deltas in generation order

        Raises:
            AIServiceError: The provider failed, blocked the reply or timed out.
        """
        if not self.model:
            raise AIConfigurationError("AI service not properly initialized")

        system_instruction, contents = to_model_contents(messages)
        if not contents:
            raise AIServiceError("Conversation has no content to send to the model", status_code=400)

        model = self._build_model(system_instruction) if system_instruction else self.model
        response = await self._open_stream(model, contents)

        iterator = response.__aiter__()
        while True:
            try:
                chunk = await asyncio.wait_for(iterator.__anext__(), timeout=settings.ai_request_timeout)
            except StopAsyncIteration:
                break
            except TimeoutError:
                raise AITimeoutError("Model stream stalled") from None
            except Exception as e:
                raise self._classify_error(e) from e

            text = self._chunk_text(chunk)
            if text:
                yield text

    async def suggest_followups(self, messages: Sequence[UIMessage], reply_text: str) -> list[str]:
        """Suggest follow-up questions for a finished turn.

        Args:
            messages: Conversation the reply answered, oldest first
            reply_text: Text of the assistant reply

        Returns:
            Up to three non-empty suggested questions

        Raises:
            AIServiceError: The provider failed or returned malformed JSON.
        """
        if not self.model:
            raise AIConfigurationError("AI service not properly initialized")

        system_instruction, contents = to_model_contents(messages)
        if reply_text:
            contents.append({"role": "model", "parts": [{"text": reply_text}]})
        contents.append({"role": "user", "parts": [{"text": SUGGESTIONS_PROMPT}]})

        model = self._build_model(system_instruction, response_schema=FollowupSuggestions)
        response = await self._open_stream(model, contents, stream=False)

        text = self._chunk_text(response)
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise AIServiceError("Model returned malformed suggestions") from e

        suggestions = payload.get("suggestions") if isinstance(payload, dict) else None
        if not isinstance(suggestions, list):
            raise AIServiceError("Model returned malformed suggestions")

        cleaned = [item.strip() for item in suggestions if isinstance(item, str) and item.strip()]
        return cleaned[:MAX_SUGGESTIONS]

    @retry(
        retry=retry_if_exception_type((AIRateLimitError, AIQuotaExceededError)),
        stop=stop_after_attempt(settings.ai_max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.ai_retry_backoff_factor,
            min=settings.ai_retry_min_wait,
            max=settings.ai_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _open_stream(self, model, contents: list[dict[str, Any]], stream: bool = True):
        """Start a generation, retrying on rate limits.

        Streaming calls return the response iterator; others the full response.
        """
        try:
            return await asyncio.wait_for(
                model.generate_content_async(contents, stream=stream),
                timeout=settings.ai_request_timeout,
            )
        except TimeoutError:
            raise AITimeoutError("Timed out waiting for the model") from None
        except Exception as e:
            raise self._classify_error(e) from e

    def _chunk_text(self, chunk) -> str:
        """Extract text from a streamed chunk."""
        feedback = getattr(chunk, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            logger.error(f"Prompt blocked by safety filters: {feedback.block_reason}")
            raise AIContentFilterError("Content was blocked by AI safety filters. Please rephrase your request.")

        try:
            return chunk.text or ""
        except ValueError:
            # Chunk carried no text parts, e.g. only a finish reason
            logger.debug("Skipping stream chunk without text")
            return ""

    def _extract_retry_delay(self, error_message: str) -> int:
        """Extract retry delay from Gemini API error message.

        Args:
            error_message: Error message from Gemini API

        Returns:
            Retry delay in seconds, or default value if not found
        """
        # Pattern: "Please retry in 32.984803332s"
        match = re.search(r"retry in (\d+(?:\.\d+)?)s", error_message)
        if match:
            return int(float(match.group(1))) + 1  # Add 1 second buffer
        return settings.ai_retry_min_wait

    def _classify_error(self, error: Exception) -> AIServiceError:
        """Map a provider exception onto the AI exception hierarchy."""
        if isinstance(error, AIServiceError):
            return error

        full_error_msg = str(error)
        error_msg = full_error_msg.lower()
        retry_delay = self._extract_retry_delay(full_error_msg)

        # Check quota first, as it often includes "429"
        if "quota" in error_msg:
            logger.error(f"Quota exceeded. Retry after {retry_delay}s. Error: {full_error_msg}")
            return map_ai_error(
                "quota_exceeded",
                f"API quota exceeded. Please try again in {retry_delay} seconds",
                {"retry_after": retry_delay},
            )
        if "429" in full_error_msg or ("rate" in error_msg and "limit" in error_msg):
            logger.warning(f"Rate limit hit. Retry after {retry_delay}s")
            return AIRateLimitError(
                f"Rate limit exceeded. Retry after {retry_delay} seconds",
                retry_after=retry_delay,
            )
        if "safety" in error_msg or "blocked" in error_msg:
            return map_ai_error("content_filtered", f"Content was blocked: {full_error_msg}")
        if "503" in full_error_msg or "unavailable" in error_msg:
            return map_ai_error("service_unavailable", f"AI service unavailable: {full_error_msg}")

        logger.error(f"Gemini API call failed: {full_error_msg}")
        return AIServiceError(f"AI generation failed: {full_error_msg}")

    def get_service_status(self) -> dict[str, Any]:
        """Describe the configured model."""
        return {
            "service_available": self.model is not None,
            "model_name": self.model_name,
            "max_output_tokens": settings.gemini_max_tokens,
            "request_timeout": settings.ai_request_timeout,
        }
