"""
Structured responses from an OpenAI-compatible chat-completions endpoint
(OpenRouter by default).

One request per call, no retries: the caller decides what a failure means.
The JSON content of the first choice is validated against a pydantic schema
in strict mode, so a payload that parses but does not match is rejected
rather than coerced.
"""

from typing import Any, Dict, Optional
import json
import logging

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tripplanner.core.config import settings
from tripplanner.core.errors import (
    ExternalServiceError,
    LLMAuthenticationError,
    LLMConnectionError,
    LLMInvalidRequestError,
    LLMRateLimitError,
    LLMUnavailableError,
    ValidationError,
)
from tripplanner.core.monitoring import track_performance

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "openai/gpt-4o-mini"


class OpenRouterClient:
    """Thin client around POST {base_url}/chat/completions."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        default_params: Optional[Dict[str, Any]] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        self.default_model = default_model or settings.openrouter_default_model or FALLBACK_MODEL
        self.default_params = dict(default_params or {})
        self.max_tokens = max_tokens or settings.openrouter_max_tokens
        self._client = httpx.Client(
            timeout=timeout if timeout is not None else settings.openrouter_timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        logger.debug(f"OpenRouterClient initialized (base_url={self.base_url}, model={self.default_model})")

    @classmethod
    def from_settings(cls) -> "OpenRouterClient":
        return cls(api_key=settings.openrouter_api_key)

    def close(self) -> None:
        self._client.close()

    @track_performance("LLM structured response")
    def get_structured_response(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Any,
        model: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one chat-completion request and return the validated payload.

        Raises:
            ValidationError: missing content, non-JSON content, or schema mismatch.
            LLMAuthenticationError: no API key is configured.
            ExternalServiceError (or a subclass): HTTP or network failure.
        """
        if not self.api_key:
            raise LLMAuthenticationError("AI service is not configured.")
        logger.debug(
            f"Requesting structured response (model={model or self.default_model}, "
            f"system_prompt={len(system_prompt)} chars, user_prompt={len(user_prompt)} chars)"
        )
        body = self.build_request_body(system_prompt, user_prompt, model=model, params=params)
        payload = self._send(body)
        return self._parse_and_validate(payload, schema)

    def build_request_body(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model or self.default_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            # Schema lives in the system prompt; only JSON-object mode is requested.
            "response_format": {"type": "json_object"},
        }
        body.update(self.default_params)
        body.update(params or {})
        body["max_tokens"] = self.max_tokens
        return body

    def _send(self, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/chat/completions"
        logger.debug(f"POST {url}")
        try:
            response = self._client.post(url, json=body)
        except httpx.RequestError as e:
            logger.error(f"Network error while calling the LLM API: {e!r}")
            raise LLMConnectionError(
                "Failed to connect to the AI service. Please check your network connection.", e
            )

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"LLM API returned a non-JSON body: {response.text[:500]}")
                raise ValidationError("Invalid response structure from the AI service.") from e

        raise self._status_error(response)

    @staticmethod
    def _status_error(response: httpx.Response) -> ExternalServiceError:
        status = response.status_code
        cause = RuntimeError(f"HTTP {status}: {response.text[:1000]}")
        logger.error(f"LLM API request failed: {status} {response.reason_phrase} {response.text[:500]}")

        if status == 401:
            return LLMAuthenticationError("Invalid API key. Please check the AI service configuration.", cause)
        if status == 429:
            return LLMRateLimitError("Rate limit exceeded. Please try again later.", cause)
        if status == 400:
            return LLMInvalidRequestError("Invalid request parameters. Please check your input.", cause)
        if status >= 500:
            return LLMUnavailableError("The AI service is temporarily unavailable. Please try again later.", cause)
        return ExternalServiceError(f"AI service error: {response.reason_phrase or status}", cause)

    @staticmethod
    def _parse_and_validate(payload: Any, schema: Any) -> Any:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not content or not isinstance(content, str):
            logger.error(f"Invalid response structure from LLM API: {str(payload)[:500]}")
            raise ValidationError("Invalid response structure from the AI service.")

        logger.debug(f"Raw LLM content ({len(content)} chars): {content[:200]}")

        try:
            json.loads(content)
        except ValueError as e:
            logger.error(f"Failed to parse LLM content as JSON: {content[:500]}")
            raise ValidationError("Failed to parse the response from the AI service.", details=str(e))

        try:
            result = TypeAdapter(schema).validate_json(content, strict=True)
        except PydanticValidationError as e:
            logger.error(f"LLM response does not match the expected format: {e.error_count()} issue(s)")
            raise ValidationError(
                "The response from the AI service does not match the expected format.",
                details=json.loads(e.json(include_url=False)),
            )

        logger.info("Structured response validated successfully")
        return result
