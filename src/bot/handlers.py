"""aiogram message handlers.

Hard contract: every incoming message produces exactly one reply. Free-text commands are answered
with the JSON result envelope; `/refresh` and `/export <format>` drive the maintenance operations.
Internal errors are logged and never leak into the reply.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aiogram.filters import CommandObject
from aiogram.types import BufferedInputFile, Message

from src.actions.envelope import error_envelope
from src.app import App
from src.intent.schema import Action
from src.pipeline import interpret_and_execute
from src.powerbi.client import EXPORT_FORMATS, BackendError

logger = logging.getLogger(__name__)

# Telegram rejects messages longer than 4096 characters.
MAX_REPLY_CHARS = 4000
MAX_REPLY_ROWS = 10
_EMPTY_REPLY = error_envelope(Action.unknown, "Empty command").to_dict()


def _is_command_text(text: str) -> bool:
    return text.lstrip().startswith("/")


def render_envelope(envelope: dict[str, Any]) -> str:
    """Render an envelope as pretty JSON, truncating long query results."""

    text = json.dumps(envelope, ensure_ascii=False, indent=2)
    if len(text) <= MAX_REPLY_CHARS:
        return text

    trimmed = dict(envelope)
    warnings = list(trimmed.get("warnings") or [])
    result = trimmed.get("result")
    if isinstance(result, list):
        trimmed["result"] = result[:MAX_REPLY_ROWS]
        trimmed["warnings"] = [*warnings, f"result truncated to {MAX_REPLY_ROWS} of {len(result)} rows"]
        text = json.dumps(trimmed, ensure_ascii=False, indent=2)
        if len(text) <= MAX_REPLY_CHARS:
            return text

    # Still too long: drop the result so the reply stays valid JSON.
    trimmed.pop("result", None)
    trimmed["warnings"] = [*warnings, "result omitted: too large for a chat message"]
    return json.dumps(trimmed, ensure_ascii=False, indent=2)


async def handle_message(message: Message, app: App) -> None:
    """Handle any incoming Telegram text message and reply with the result envelope."""

    raw_text = message.text or message.caption or ""
    if not raw_text.strip() or _is_command_text(raw_text):
        await message.answer(render_envelope(_EMPTY_REPLY))
        return

    envelope = await interpret_and_execute(raw_text, app=app)
    await message.answer(render_envelope(envelope))


async def handle_refresh(message: Message, app: App) -> None:
    """`/refresh`: trigger a dataset refresh on the remote backend."""

    if app.backend is None:
        await message.answer("Power BI is not configured.")
        return

    try:
        await app.backend.refresh_dataset()
    except BackendError as exc:
        logger.warning("refresh failed status=%s reason=%s", exc.status, exc)
        await message.answer("Dataset refresh failed.")
        return

    await message.answer("Dataset refresh started.")


async def handle_export(message: Message, command: CommandObject, app: App) -> None:
    """`/export [pdf|pptx|png]`: export the report and send it back as a document."""

    if app.backend is None:
        await message.answer("Power BI is not configured.")
        return

    file_format = (command.args or "pdf").strip().upper()
    if file_format not in EXPORT_FORMATS:
        await message.answer(f"Unsupported format. Use one of: {', '.join(sorted(EXPORT_FORMATS)).lower()}.")
        return

    await message.answer(f"Exporting report as {file_format}...")
    # noinspection PyBroadException
    try:
        content = await app.backend.export_report(file_format)
    except BackendError as exc:
        logger.warning("export failed format=%s status=%s reason=%s", file_format, exc.status, exc)
        await message.answer("Report export failed.")
        return
    except Exception:
        # Handler boundary: never leak internal errors to the chat.
        logger.exception("export handler failed")
        await message.answer("Report export failed.")
        return

    await message.answer_document(
        BufferedInputFile(content, filename=f"report.{file_format.lower()}"),
    )
