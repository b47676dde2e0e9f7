# backend/ai/groq_client.py
import logging
from typing import Dict, List, Optional

import requests

from core.config import settings

log = logging.getLogger(__name__)


class GroqError(Exception):
    pass


def chat(
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
    max_tokens: int = 2000,
    temperature: float = 0.0,
    timeout: Optional[int] = None,
) -> str:
    """
    Calls the Groq chat-completions endpoint (OpenAI-compatible) and returns
    the content of the first choice. Raises GroqError on transport, HTTP or
    payload errors.
    """
    if not settings.groq_api_key:
        raise GroqError("GROQ_API_KEY not set")

    model = model or settings.groq_model
    url = f"{settings.groq_base_url.rstrip('/')}/chat/completions"
    payload = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "response_format": {"type": "json_object"},
    }
    headers = {"Authorization": f"Bearer {settings.groq_api_key}"}

    try:
        resp = requests.post(
            url,
            json=payload,
            headers=headers,
            timeout=timeout or settings.groq_timeout_seconds,
        )
    except requests.RequestException as e:
        log.error("groq request failed", extra={"model": model, "error": str(e)})
        raise GroqError(f"request failed: {e}") from e

    if resp.status_code >= 400:
        log.error("groq api error", extra={"model": model, "status_code": resp.status_code})
        raise GroqError(f"groq API error (status {resp.status_code}): {resp.text[:500]}")

    try:
        body = resp.json()
    except ValueError as e:
        raise GroqError(f"failed to decode response: {e}") from e

    if not isinstance(body, dict):
        raise GroqError(f"unexpected response body: {type(body).__name__}")

    if body.get("error"):
        err = body["error"]
        raise GroqError(f"API error: {err.get('message') if isinstance(err, dict) else err}")

    choices = body.get("choices") or []
    if not isinstance(choices, list) or not choices:
        raise GroqError("no choices returned from API")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise GroqError("malformed choice in API response")
    content = message.get("content") or ""
    log.debug("groq chat completed", extra={"model": model, "response_length": len(content)})
    return content
