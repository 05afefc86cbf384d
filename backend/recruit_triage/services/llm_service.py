"""
OpenAI completion boundary and best-effort JSON decoding of model output.

generate() retries once after a fixed delay when the provider reports a
rate limit or an unavailable tool; if the retry also fails it returns an
"ERROR: ..." sentinel string instead of raising.
"""
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..config import Settings
from ..exceptions import ConfigurationError, LLMError

logger = logging.getLogger(__name__)

# Substring (lowercased) -> reason used in logs and the sentinel string.
TRANSIENT_ERROR_MARKERS = {
    "rate limit": "rate limit",
    "rate_limit": "rate limit",
    "unavailable tool": "model tried to call unavailable tool",
}

ERROR_SENTINEL_PREFIX = "ERROR:"


@dataclass(frozen=True)
class JsonParseResult:
    """Either a decoded JSON object or the reason it could not be decoded."""
    value: Optional[dict] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def _first_balanced_object(text: str) -> Optional[str]:
    """First balanced {...} region, ignoring braces inside JSON strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        start = text.find("{", start + 1)
    return None


def decode_json_object(text: Optional[str]) -> JsonParseResult:
    """Parse the first JSON object out of free-text model output. Never raises."""
    if not text or not text.strip():
        return JsonParseResult(error="empty response")
    if text.lstrip().startswith(ERROR_SENTINEL_PREFIX):
        return JsonParseResult(error=text.strip())

    # Remove markdown code fences if present
    cleaned = re.sub(r"```(?:json)?\s*", "", text).strip()
    candidate = _first_balanced_object(cleaned)
    if candidate is None:
        return JsonParseResult(error="no JSON object found")
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return JsonParseResult(error=f"invalid JSON: {e.msg}")
    if not isinstance(value, dict):
        return JsonParseResult(error="JSON value is not an object")
    return JsonParseResult(value=value)


def transient_reason(error: BaseException) -> Optional[str]:
    message = str(error).lower()
    for marker, reason in TRANSIENT_ERROR_MARKERS.items():
        if marker in message:
            return reason
    return None


class LLMClient:
    """generate(prompt, instructions) -> text over OpenAI chat completions."""

    def __init__(self, settings: Settings, sleep: Callable[[float], Any] = time.sleep):
        self.settings = settings
        self._sleep = sleep
        self._client = None

    def _get_openai_client(self):
        if self._client is None:
            api_key = self.settings.openai_api_key
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY not set. Add to .env or environment.")
            from openai import OpenAI
            self._client = OpenAI(api_key=api_key)
        return self._client

    def _complete(self, prompt: str, instructions: Optional[str], max_tokens: int) -> str:
        client = self._get_openai_client()
        messages = []
        if instructions:
            messages.append({"role": "system", "content": instructions})
        messages.append({"role": "user", "content": prompt})
        response = client.chat.completions.create(
            model=self.settings.openai_model,
            temperature=self.settings.openai_temperature,
            max_tokens=max_tokens,
            messages=messages,
        )
        return (response.choices[0].message.content or "").strip()

    def generate(self, prompt: str, instructions: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        """
        Return model text. Transient failures are retried once after llm_retry_delay_s;
        other failures raise LLMError.
        """
        max_tokens = max_tokens or self.settings.llm_max_tokens
        try:
            return self._complete(prompt, instructions, max_tokens)
        except ConfigurationError:
            raise
        except Exception as e:
            reason = transient_reason(e)
            if reason is None:
                raise LLMError(f"LLM call failed: {e}") from e

        logger.warning(f"LLM {reason}, waiting {self.settings.llm_retry_delay_s:.0f}s to retry...")
        self._sleep(self.settings.llm_retry_delay_s)
        try:
            return self._complete(prompt, instructions, max_tokens)
        except Exception as retry_error:
            logger.error(f"Retry after {reason} also failed: {retry_error}")
            return f"{ERROR_SENTINEL_PREFIX} Retry after {reason} also failed"
