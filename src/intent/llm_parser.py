"""Optional LLM-based intent parser (feature-flagged).

The LLM is only allowed to produce **Intent JSON**. Its output is validated against the schema
before use and never carries executable DAX into the pipeline.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from http.client import HTTPException
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from src.intent.context import DEFAULT_CONTEXT, CommandContext
from src.intent.schema import Intent, validate_intent

logger = logging.getLogger(__name__)


class LLMParserError(RuntimeError):
    """Base class for LLM parser failures; every subclass triggers the rules fallback."""


class ProviderError(LLMParserError):
    """Raised when the completion provider is unreachable or misbehaves."""


class ParseError(LLMParserError):
    """Raised when the completion is not valid JSON."""


class RejectedIntentError(LLMParserError):
    """Raised when the completion is JSON but not an intent (no `action`)."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for an OpenAI-style (or Azure OpenAI) Chat Completions API call."""

    api_key: str
    model: str = "gpt-4o-mini"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 30.0
    azure_deployment: str | None = None
    api_version: str = "2025-04-01-preview"


Completer = Callable[[str, str, LLMConfig], str]


def _load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_intent_v1.md"
    return prompt_path.read_text(encoding="utf-8")


def build_system_prompt(context: CommandContext) -> str:
    """System prompt enriched with the serialized vocabulary."""

    return f"{_load_prompt().rstrip()}\n\nVocabulary:\n{context.to_prompt_json()}\n"


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        # After stripping backticks, try to remove leading "json" marker.
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(config: LLMConfig) -> str:
    base = config.api_base.rstrip("/")
    if config.azure_deployment:
        deployment = quote(config.azure_deployment, safe="")
        return (
            f"{base}/openai/deployments/{deployment}/chat/completions"
            f"?api-version={quote(config.api_version, safe='')}"
        )
    return base + "/chat/completions"


def _auth_headers(config: LLMConfig) -> dict[str, str]:
    if config.azure_deployment:
        return {"api-key": config.api_key}
    return {"Authorization": f"Bearer {config.api_key}"}


def complete_chat(system_prompt: str, user_text: str, config: LLMConfig) -> str:
    """Call the completion provider and return the raw message content.

    The call is compatible with OpenAI-style `/v1/chat/completions` APIs and Azure OpenAI
    deployments.

    Raises:
        ProviderError: On HTTP/connection errors, timeouts or an unexpected response envelope.
    """

    payload: dict[str, Any] = {
        "temperature": 0,
        "response_format": {"type": "json_object"},
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ],
    }
    if not config.azure_deployment:
        payload["model"] = config.model

    req = Request(
        _chat_completions_url(config),
        method="POST",
        headers={**_auth_headers(config), "Content-Type": "application/json"},
        data=json.dumps(payload).encode(),
    )

    try:
        with urlopen(req, timeout=config.timeout_s) as resp:  # noqa: S310 (explicit, feature-flagged network call)
            body = resp.read()
    except HTTPError as exc:
        raise ProviderError(f"LLM HTTP error: {exc.code}") from exc
    except URLError as exc:
        raise ProviderError("LLM connection error") from exc
    except TimeoutError as exc:
        raise ProviderError("LLM request timed out") from exc
    except (OSError, HTTPException) as exc:
        # Errors raised while reading the response are not wrapped by urllib.
        raise ProviderError(f"LLM connection failed: {type(exc).__name__}") from exc

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except Exception as exc:  # noqa: BLE001
        raise ProviderError("Unexpected LLM response format") from exc

    if not isinstance(content, str):
        raise ProviderError("LLM returned no message content")
    return content


def parse_intent_json_via_llm(
        user_text: str,
        *,
        config: LLMConfig,
        context: CommandContext | None = None,
        completer: Completer | None = None,
) -> dict[str, Any]:
    """Ask the LLM for intent JSON and return the decoded object (not yet validated)."""

    complete = completer or complete_chat
    content = complete(build_system_prompt(context or DEFAULT_CONTEXT), user_text, config)

    try:
        obj = json.loads(_strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise ParseError("LLM did not return valid JSON") from exc

    if not isinstance(obj, dict) or not obj.get("action"):
        raise RejectedIntentError("LLM response carries no action")
    return obj


def parse_intent_via_llm(
        user_text: str,
        *,
        config: LLMConfig,
        context: CommandContext | None = None,
        completer: Completer | None = None,
) -> Intent:
    """Ask the LLM for an intent and validate it.

    Raises:
        LLMParserError: On provider, JSON or semantic rejection failures.
        IntentValidationError: If the JSON does not validate against the schema.
    """

    obj = parse_intent_json_via_llm(user_text, config=config, context=context, completer=completer)
    return validate_intent(obj, context)


def llm_config_from_env(*, api_key: str | None = None) -> LLMConfig:
    """Build LLM config from environment variables.

    Environment variables (optional):
        - LLM_MODEL
        - LLM_API_BASE
        - LLM_TIMEOUT_S
        - LLM_AZURE_DEPLOYMENT (switches to Azure OpenAI URL and `api-key` header)
        - LLM_API_VERSION
    """

    key = api_key or os.getenv("LLM_API_KEY") or ""
    if not key:
        raise ProviderError("LLM_API_KEY is required")

    try:
        timeout_s = float(os.getenv("LLM_TIMEOUT_S") or "30")
    except ValueError as exc:
        raise ProviderError("LLM_TIMEOUT_S must be a number") from exc
    return LLMConfig(
        api_key=key,
        model=os.getenv("LLM_MODEL") or "gpt-4o-mini",
        api_base=os.getenv("LLM_API_BASE") or "https://api.openai.com/v1",
        timeout_s=timeout_s,
        azure_deployment=os.getenv("LLM_AZURE_DEPLOYMENT") or None,
        api_version=os.getenv("LLM_API_VERSION") or "2025-04-01-preview",
    )
