"""Bot router composition."""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command

from src.bot.handlers import handle_export, handle_message, handle_refresh

router = Router(name="root")
router.message.register(handle_refresh, Command("refresh"))
router.message.register(handle_export, Command("export"))
router.message.register(handle_message)
