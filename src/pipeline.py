"""Entry point: interpret one free-text command and execute it.

`interpret_and_execute` never raises. Parsing runs in a worker thread (the LLM adapter is blocking),
execution goes through the shared `ActionExecutor`, and a successful local mutation is published
best-effort; publish failures become envelope warnings.
"""

from __future__ import annotations

import asyncio
import logging
from time import monotonic
from typing import TYPE_CHECKING, Any

from src.actions.envelope import error_envelope
from src.intent.context import CommandContext
from src.intent.parser import parse_intent_with_source
from src.intent.schema import Action
from src.publish.github import PublishError

if TYPE_CHECKING:
    from src.app import App

logger = logging.getLogger(__name__)


async def interpret_and_execute(
        command_text: str,
        context: CommandContext | None = None,
        *,
        app: App,
) -> dict[str, Any]:
    """Turn `command_text` into a result envelope dict.

    Args:
        command_text: Raw user text (typed or transcribed).
        context: Vocabulary override for this command; defaults to the app's vocabulary.
        app: Application container with the executor and optional publisher.
    """

    started = monotonic()
    ctx = context or app.context

    # noinspection PyBroadException
    try:
        parse_result = await asyncio.to_thread(
            parse_intent_with_source,
            command_text,
            llm_enabled=app.settings.llm_enabled,
            llm_api_key=app.settings.llm_api_key,
            context=ctx,
        )
        execution = await app.executor.execute(parse_result.intent, ctx)
        envelope = execution.envelope
        envelope.source = parse_result.source

        if execution.mutated and app.publisher is not None:
            try:
                await app.publisher.commit(f"Voice command: {parse_result.intent.action}")
            except PublishError as exc:
                logger.warning("publish failed action=%s reason=%s", parse_result.intent.action, exc)
                envelope.warnings.append(f"publish failed: {exc}")

        latency_ms = int((monotonic() - started) * 1000)
        logger.info(
            "handled source=%s action=%s state=%s latency_ms=%d",
            parse_result.source,
            parse_result.intent.action,
            execution.state,
            latency_ms,
        )
        return envelope.to_dict()
    except Exception:
        # Pipeline boundary: internal errors become an error envelope without details.
        logger.exception("command failed")
        return error_envelope(Action.unknown, "Internal error", raw=command_text).to_dict()
