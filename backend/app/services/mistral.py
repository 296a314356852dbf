"""
Mistral AI Client
=================
Thin async wrapper around the Mistral chat completions endpoint.

Both pipeline stages (emotion classification and recommendations) talk to
the same model through one MistralClient instance, built once at startup
and injected. Nothing here reads global state.
"""

from __future__ import annotations

import json
import logging

import httpx

from app.config import Settings

logger = logging.getLogger(__name__)

_CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class MistralAPIError(Exception):
    """Non-2xx response from the Mistral API."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Mistral API error {status_code}: {body}")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class MistralClient:
    """Makes authenticated chat completion requests to Mistral AI."""

    def __init__(
        self,
        api_key: str,
        model: str = "mistral-small-latest",
        base_url: str = "https://api.mistral.ai",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = f"{base_url.rstrip('/')}{_CHAT_COMPLETIONS_PATH}"
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "MistralClient":
        if not settings.mistral_api_key:
            logger.warning("MISTRAL_API_KEY is not set, every analysis will fail")
        return cls(
            api_key=settings.mistral_api_key,
            model=settings.mistral_model,
            base_url=settings.mistral_api_url,
            timeout=settings.mistral_timeout_seconds,
        )

    @property
    def model(self) -> str:
        return self._model

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Send one system + user turn in JSON mode and return the raw content.

        Returns an empty string when the response carries no choices or no
        content. Raises MistralAPIError on non-2xx, httpx.HTTPError on transport
        failures and ValueError when the body is not a chat completion envelope.
        """
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(self._url, headers=headers, json=payload)

        if not response.is_success:
            raise MistralAPIError(response.status_code, response.text)

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object envelope, got {type(data).__name__}")

        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise ValueError("malformed chat completion: choices is not a list")
        if not choices:
            return ""

        choice = choices[0]
        message = choice.get("message") if isinstance(choice, dict) else None
        if message is None:
            raise ValueError("malformed chat completion: first choice has no message")
        if not isinstance(message, dict):
            raise ValueError("malformed chat completion: message is not an object")

        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise ValueError("malformed chat completion: content is not a string")
        return content


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def parse_json_object(raw_content: str) -> dict:
    """Parse model output into a JSON object.

    Tolerates markdown code fences and commentary around the object, which
    some models still emit in JSON mode. Raises ValueError if no JSON object
    can be recovered.
    """
    text = (raw_content or "").strip()
    if not text:
        raise ValueError("empty response content")

    # Strip markdown code fences if present
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    text = text.strip()

    # Try to find the JSON object if there's extra text around it
    if not text.startswith("{"):
        start = text.find("{")
        end = text.rfind("}") + 1
        if start != -1 and end > start:
            text = text[start:end]

    parsed = json.loads(text)  # json.JSONDecodeError is a ValueError
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed
