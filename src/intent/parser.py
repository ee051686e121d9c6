"""Intent parser orchestration (LLM optional; rules-based fallback)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from src.intent.context import DEFAULT_CONTEXT, CommandContext
from src.intent.llm_parser import (
    Completer,
    LLMParserError,
    llm_config_from_env,
    parse_intent_via_llm,
)
from src.intent.rules_parser import parse_intent as parse_rules_intent
from src.intent.schema import Action, Intent, IntentValidationError

logger = logging.getLogger(__name__)

ParseSource = Literal["llm", "rules"]


@dataclass(frozen=True)
class ParseResult:
    """Validated intent plus information about which parser produced it."""

    intent: Intent
    source: ParseSource


def parse_intent_with_source(
        text: str,
        *,
        llm_enabled: bool,
        llm_api_key: str | None = None,
        context: CommandContext | None = None,
        completer: Completer | None = None,
) -> ParseResult:
    """Parse text into an Intent object.

    Strategy:
        1) If LLM mode is enabled, ask the LLM to produce strict Intent JSON and validate it.
        2) On any failure (provider error, invalid JSON, no action, schema rejection) or an
           `unknown` answer, fall back to the deterministic rules parser.
        3) The rules parser is total; its `unknown` intent is a valid terminal outcome.
    """

    ctx = context or DEFAULT_CONTEXT

    if llm_enabled:
        try:
            cfg = llm_config_from_env(api_key=llm_api_key)
            intent = parse_intent_via_llm(text, config=cfg, context=ctx, completer=completer)
            if intent.action != Action.unknown:
                return ParseResult(intent=intent, source="llm")
            logger.info("llm returned unknown action; using rules parser")
        except (LLMParserError, IntentValidationError) as exc:
            # Invalid LLM output must never crash the pipeline; fall back to rules.
            logger.info("llm parse failed (%s): %s", type(exc).__name__, exc)

    return ParseResult(intent=parse_rules_intent(text, ctx), source="rules")


def parse_intent(
        text: str,
        *,
        llm_enabled: bool,
        llm_api_key: str | None = None,
        context: CommandContext | None = None,
) -> Intent:
    """Parse text into a validated Intent object (convenience wrapper)."""

    return parse_intent_with_source(
        text,
        llm_enabled=llm_enabled,
        llm_api_key=llm_api_key,
        context=context,
    ).intent
