"""Optional AI summarizer over an OpenAI-compatible chat completions API.

:class:`AiSummarizer` posts the fragment title and the first 2000 characters
of its body and asks for a short summary.  The model is prompted to answer
with a JSON object ``{"summary", "sentiment", "keywords"}``; a plain-text
answer is accepted as the summary alone and the caller fills sentiment and
keywords locally.

Every failure (missing key, timeout, non-2xx status, empty or malformed
answer) raises :class:`~news_scanner.core.exceptions.AnnotationDegradedError`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from news_scanner.config.settings import Settings
from news_scanner.core.exceptions import AnnotationDegradedError
from news_scanner.core.types import RawFragment

logger = logging.getLogger(__name__)

AI_BODY_LIMIT: int = 2000
AI_MAX_TOKENS: int = 300
AI_TEMPERATURE: float = 0.3
AI_MAX_KEYWORDS: int = 5

SYSTEM_PROMPT: str = (
    "Create 3-5 sentence summaries of news articles with sentiment and keywords. "
    'Answer with a JSON object: {"summary": string, '
    '"sentiment": "positive" | "negative" | "neutral", "keywords": [up to 5 strings]}.'
)


class AiAnnotation(BaseModel):
    """Validated answer of the AI summarizer.

    ``sentiment`` and ``keywords`` are ``None`` when the model answered with
    plain text instead of the requested JSON object.
    """

    summary: str = Field(min_length=1)
    sentiment: Literal["positive", "negative", "neutral"] | None = None
    keywords: list[str] | None = None

    @field_validator("keywords")
    @classmethod
    def _cap_keywords(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [k.strip().lower() for k in value if k.strip()][:AI_MAX_KEYWORDS]


def build_user_message(fragment: RawFragment) -> str:
    """Return the prompt for one fragment, with the body capped."""
    return (
        "Summarize this article:\n\n"
        f"Title: {fragment.title}\n\n"
        f"Content: {fragment.body[:AI_BODY_LIMIT]}"
    )


def parse_completion(response: dict[str, Any]) -> AiAnnotation:
    """Turn a chat completions response into an :class:`AiAnnotation`.

    Raises:
        AnnotationDegradedError: If no usable content is present.
    """
    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise AnnotationDegradedError(f"unexpected completion shape: {exc}") from exc
    if not isinstance(content, str) or not content.strip():
        raise AnnotationDegradedError("completion has no content")

    content = content.strip()
    try:
        payload = json.loads(content)
    except json.JSONDecodeError:
        return AiAnnotation(summary=content)

    if not isinstance(payload, dict):
        return AiAnnotation(summary=content)
    try:
        return AiAnnotation.model_validate(payload)
    except ValidationError as exc:
        raise AnnotationDegradedError(f"malformed annotation payload: {exc}") from exc


class AiSummarizer:
    """Client for the optional AI summarization collaborator.

    Args:
        api_key: Bearer token for the API.
        api_url: Chat completions endpoint.
        model: Model identifier.
        timeout: Request timeout in seconds.
        client: Optional shared ``httpx.AsyncClient``; a short-lived client is
            opened per call otherwise.
    """

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str,
        model: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._model = model
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> AiSummarizer | None:
        """Return a summarizer, or ``None`` when no API key is configured."""
        if not settings.ai_api_key:
            return None
        return cls(
            api_key=settings.ai_api_key,
            api_url=settings.ai_api_url,
            model=settings.ai_model,
            timeout=settings.ai_timeout_seconds,
        )

    async def summarize(self, fragment: RawFragment) -> AiAnnotation:
        """Request an annotation for ``fragment``.

        Raises:
            AnnotationDegradedError: On any failure.
        """
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_message(fragment)},
            ],
            "max_tokens": AI_MAX_TOKENS,
            "temperature": AI_TEMPERATURE,
        }
        if self._client is not None:
            data = await self._post(self._client, payload)
        else:
            async with httpx.AsyncClient() as client:
                data = await self._post(client, payload)
        annotation = parse_completion(data)
        logger.debug(
            "ai summarizer: annotated %s (structured=%s)",
            fragment.url,
            annotation.sentiment is not None,
        )
        return annotation

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await client.post(
                self._api_url, json=payload, headers=headers, timeout=self._timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            raise AnnotationDegradedError(
                f"AI summarizer HTTP {code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise AnnotationDegradedError("AI summarizer timed out") from exc
        except httpx.RequestError as exc:
            raise AnnotationDegradedError(f"AI summarizer network error: {exc}") from exc

        try:
            return response.json()  # type: ignore[no-any-return]
        except ValueError as exc:
            raise AnnotationDegradedError(f"AI summarizer returned invalid JSON: {exc}") from exc
