"""
Callback query handlers for the Telegram bot.
"""

from __future__ import annotations

from aiogram import F, Router
from aiogram.types import CallbackQuery
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings
from ...db.models import ORD_MAX
from ...exceptions import ValidationError
from ...services.content import ContentService
from ...services.guards import AdminGuard
from ...services.types import parse_section
from .commands import HELP_TEXT, WELCOME_TEXT
from .constants import LESSONS_PAGE_SIZE, NEWS_BOT_LIMIT, SECTION_TITLES
from .keyboards import (
    build_back_keyboard,
    build_continue_keyboard,
    build_lesson_keyboard,
    build_lessons_keyboard,
    build_links_keyboard,
    build_main_menu_keyboard,
    build_news_keyboard,
)
from .utils import (
    LOGGER,
    escape_markdown,
    paginate,
    parse_positive_int,
    safe_answer,
    safe_edit_text,
)

router = Router(name="callbacks")


def _content(session: AsyncSession, settings: Settings) -> ContentService:
    return ContentService(session, settings.telegram.channel_username)


# -----------------------------------------------------------------------------
# Menu Callbacks
# -----------------------------------------------------------------------------


@router.callback_query(F.data == "menu:main")
async def callback_menu(callback: CallbackQuery, settings: Settings, admin_guard: AdminGuard) -> None:
    """Handle back to menu action."""
    if not callback.message or not callback.from_user:
        return

    # Answer immediately to prevent timeout
    await safe_answer(callback)

    await safe_edit_text(
        callback.message,
        WELCOME_TEXT,
        reply_markup=build_main_menu_keyboard(
            settings, is_admin=admin_guard.is_admin(callback.from_user.id)
        ),
    )


@router.callback_query(F.data == "menu:help")
async def callback_help(callback: CallbackQuery) -> None:
    if not callback.message:
        return
    await safe_answer(callback)
    await safe_edit_text(callback.message, HELP_TEXT, reply_markup=build_back_keyboard())


@router.callback_query(F.data == "noop")
async def callback_noop(callback: CallbackQuery) -> None:
    await safe_answer(callback)


@router.callback_query(F.data == "menu:news")
async def callback_news(callback: CallbackQuery, session: AsyncSession, settings: Settings) -> None:
    """Show the newest channel posts filed as news."""
    if not callback.message:
        return
    await safe_answer(callback)

    news = await _content(session, settings).news(NEWS_BOT_LIMIT)
    if not news:
        text = "*News*\n\nNo news yet\\."
    elif not settings.telegram.channel_username:
        text = "*News*\n\n" + escape_markdown(
            "\n".join(f"{item.created_at:%d.%m.%Y}: post {item.message_id}" for item in news)
        )
    else:
        text = "*News*\n\nLatest posts from the channel:"

    await safe_edit_text(callback.message, text, reply_markup=build_news_keyboard(news))


@router.callback_query(F.data == "menu:links")
async def callback_links(callback: CallbackQuery, session: AsyncSession, settings: Settings) -> None:
    if not callback.message:
        return
    await safe_answer(callback)

    links = await _content(session, settings).links()
    text = "*Useful links*" if links else "*Useful links*\n\nNothing here yet\\."
    await safe_edit_text(callback.message, text, reply_markup=build_links_keyboard(links))


@router.callback_query(F.data == "menu:continue")
async def callback_continue(
    callback: CallbackQuery,
    session: AsyncSession,
    settings: Settings,
) -> None:
    """Offer the last opened lesson of every section the user started."""
    if not callback.message or not callback.from_user:
        return
    await safe_answer(callback)

    records = await _content(session, settings).progress(callback.from_user.id)
    if not records:
        text = "*Continue*\n\nYou have not opened any lesson yet\\. Pick a course in the menu\\."
    else:
        lines = [
            f"{SECTION_TITLES[record.section]}: lesson {record.ord}"
            + (f" ({record.title})" if record.title else " (no longer available)")
            for record in records
        ]
        text = "*Continue*\n\n" + escape_markdown("\n".join(lines))

    await safe_edit_text(callback.message, text, reply_markup=build_continue_keyboard(records))


# -----------------------------------------------------------------------------
# Lesson Browsing
# -----------------------------------------------------------------------------


@router.callback_query(F.data.startswith("lessons:"))
async def callback_lessons(callback: CallbackQuery, session: AsyncSession, settings: Settings) -> None:
    """Paged lesson list of a section: lessons:<section>:<page>."""
    if not callback.message or not callback.data:
        return

    parts = callback.data.split(":", 2)
    try:
        section = parse_section(parts[1] if len(parts) > 1 else None)
        page = int(parts[2]) if len(parts) > 2 else 0
    except (ValidationError, ValueError):
        await safe_answer(callback, "Unknown section")
        return

    await safe_answer(callback)

    lessons = await _content(session, settings).lessons(section)
    page_items, page, total_pages = paginate(lessons, page, LESSONS_PAGE_SIZE)

    header = f"*{escape_markdown(SECTION_TITLES[section])}*"
    if not lessons:
        text = f"{header}\n\nNo lessons yet\\."
    else:
        text = f"{header}\n\n{len(lessons)} lessons\\. Pick one:"

    await safe_edit_text(
        callback.message,
        text,
        reply_markup=build_lessons_keyboard(section, page_items, page, total_pages),
    )


@router.callback_query(F.data.startswith("lesson:"))
async def callback_lesson(callback: CallbackQuery, session: AsyncSession, settings: Settings) -> None:
    """Lesson card: lesson:<section>:<ord>. Opening it records the user's position."""
    if not callback.message or not callback.from_user or not callback.data:
        return

    parts = callback.data.split(":", 2)
    try:
        section = parse_section(parts[1] if len(parts) > 1 else None)
        ord = parse_positive_int(parts[2] if len(parts) > 2 else None, "ord", maximum=ORD_MAX)
    except ValidationError:
        await safe_answer(callback, "Unknown lesson")
        return

    content = _content(session, settings)
    lesson = await content.lesson(section, ord)
    if lesson is None:
        await safe_answer(callback, "This lesson is no longer available")
        return

    await safe_answer(callback)
    await content.record_progress(callback.from_user.id, section, ord)

    ords = [item.ord for item in await content.lessons(section)]
    prev_ord, next_ord = await content.neighbours(section, ord)
    page = ords.index(ord) // LESSONS_PAGE_SIZE if ord in ords else 0

    text = (
        f"*{escape_markdown(SECTION_TITLES[section])}*\n\n"
        f"*{escape_markdown(f'{lesson.ord}. {lesson.title}')}*"
    )
    if not lesson.post_url:
        text += "\n\n" + escape_markdown(f"Channel post {lesson.message_id}")

    await safe_edit_text(
        callback.message,
        text,
        reply_markup=build_lesson_keyboard(lesson, prev_ord, next_ord, page),
    )

    LOGGER.info("User %d opened %s #%d", callback.from_user.id, section.value, ord)


__all__ = ["router"]
