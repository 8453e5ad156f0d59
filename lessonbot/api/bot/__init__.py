"""
Telegram bot handlers module.

This module provides a modular structure for the Telegram bot:
- constants.py: Section labels and paging sizes
- keyboards.py: Inline keyboard builders
- utils.py: Helper functions, the admin filter and message adapters
- commands.py: Command handlers (/start, /help)
- callbacks.py: Menu and lesson browsing callbacks
- admin.py: Admin ingestion and edit handlers
- channel.py: Auto-filing of tagged channel posts
"""

from aiogram import Router

from .admin import router as admin_router
from .callbacks import router as callbacks_router
from .channel import router as channel_router
from .commands import router as commands_router
from .constants import LESSONS_PAGE_SIZE, SECTION_TITLES
from .keyboards import (
    build_admin_keyboard,
    build_back_keyboard,
    build_lesson_keyboard,
    build_lessons_keyboard,
    build_main_menu_keyboard,
)
from .utils import (
    AdminFilter,
    escape_markdown,
    inbound_from_message,
    render_step,
)

# Create main router and include sub-routers; the admin catch-all goes after
# the public commands so /start and /help still reach everyone
router = Router(name="bot")
router.include_router(commands_router)
router.include_router(callbacks_router)
router.include_router(admin_router)
router.include_router(channel_router)

__all__ = [
    # Main router
    "router",
    # Constants
    "LESSONS_PAGE_SIZE",
    "SECTION_TITLES",
    # Keyboards
    "build_admin_keyboard",
    "build_back_keyboard",
    "build_lesson_keyboard",
    "build_lessons_keyboard",
    "build_main_menu_keyboard",
    # Utils
    "AdminFilter",
    "escape_markdown",
    "inbound_from_message",
    "render_step",
]
