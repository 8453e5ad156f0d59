"""
Command handlers for the Telegram bot.
"""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from ...config import Settings
from ...services.guards import AdminGuard
from .keyboards import build_main_menu_keyboard
from .utils import LOGGER, escape_markdown

router = Router(name="commands")

WELCOME_TEXT = (
    "Welcome\\!\n\n"
    "Here you will find the lessons of both courses, channel news and useful links\\. "
    "Open the app or browse right here in the chat\\."
)

HELP_TEXT = (
    "*Available Commands*\n\n"
    "/start \\- Show main menu\n"
    "/help \\- Show this help message\n\n"
    "*How it works:*\n"
    "1\\. Pick a course\n"
    "2\\. Open a lesson, the bot remembers where you stopped\n"
    "3\\. Use Continue to get back to it later"
)

ADMIN_HELP_TEXT = (
    "\n\n*Admin*\n"
    + escape_markdown(
        "/admin - Admin panel\n"
        "/add_lesson <prep|steam> [<ord> | <title>] - Add or replace a lesson\n"
        "/add_news - File a channel post as news\n"
        "/pending - Show what you are adding\n"
        "/cancel - Drop the pending action\n"
        "/del_lesson <prep|steam> <ord> - Delete a lesson\n"
        "/add_link <title> | <url> [| <ord>] - Add a link\n"
        "/del_link <id> - Delete a link\n"
        "/del_news <message_id> - Delete a news item"
    )
)


@router.message(CommandStart())
async def cmd_start(message: Message, settings: Settings, admin_guard: AdminGuard) -> None:
    """Handle /start command - show welcome message and menu."""
    if not message.from_user:
        return

    is_admin = admin_guard.is_admin(message.from_user.id)
    await message.answer(
        WELCOME_TEXT,
        reply_markup=build_main_menu_keyboard(settings, is_admin=is_admin),
        parse_mode="MarkdownV2",
    )

    LOGGER.info("User %d started the bot", message.from_user.id)


@router.message(Command("help"))
async def cmd_help(message: Message, admin_guard: AdminGuard) -> None:
    """Handle /help command - show available commands."""
    text = HELP_TEXT
    if message.from_user and admin_guard.is_admin(message.from_user.id):
        text += ADMIN_HELP_TEXT
    await message.answer(text, parse_mode="MarkdownV2")


__all__ = ["ADMIN_HELP_TEXT", "HELP_TEXT", "WELCOME_TEXT", "cmd_help", "cmd_start", "router"]
