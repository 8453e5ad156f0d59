"""
Keyboard builder functions for the Telegram bot.
"""

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

from ...config import Settings
from ...db.models import Section
from ...services.types import LessonView, LinkView, NewsView, ProgressView
from .constants import SECTION_ICONS, SECTION_TITLES
from .utils import shorten


def _back_row(callback_data: str = "menu:main", text: str = "« Back to Menu") -> list[InlineKeyboardButton]:
    return [InlineKeyboardButton(text=text, callback_data=callback_data)]


def webapp_url(base_url: str, fragment: str) -> str:
    """Web App URL opening a given view (`base#prep`, `base#news`, ...)."""
    return f"{base_url.split('#', 1)[0]}#{fragment}"


def build_main_menu_keyboard(settings: Settings, is_admin: bool = False) -> InlineKeyboardMarkup:
    """Build the main menu inline keyboard."""
    telegram = settings.telegram
    buttons: list[list[InlineKeyboardButton]] = []

    # Web App buttons open the front end straight at a section
    if telegram.web_app_url:
        buttons.append([
            InlineKeyboardButton(text="📱 Open app", web_app=WebAppInfo(url=telegram.web_app_url))
        ])
        buttons.append([
            InlineKeyboardButton(
                text=f"{SECTION_ICONS[section]} {SECTION_TITLES[section]}",
                web_app=WebAppInfo(url=webapp_url(telegram.web_app_url, section.value)),
            )
            for section in Section
        ])
        buttons.append([
            InlineKeyboardButton(
                text="📰 News",
                web_app=WebAppInfo(url=webapp_url(telegram.web_app_url, "news")),
            ),
            InlineKeyboardButton(
                text="🔗 Links",
                web_app=WebAppInfo(url=webapp_url(telegram.web_app_url, "links")),
            ),
        ])

    # In-chat browsing works without the Web App
    buttons.append([
        InlineKeyboardButton(
            text=f"📚 {SECTION_TITLES[section]}",
            callback_data=f"lessons:{section.value}:0",
        )
        for section in Section
    ])
    buttons.append([
        InlineKeyboardButton(text="▶️ Continue", callback_data="menu:continue"),
        InlineKeyboardButton(text="📰 News", callback_data="menu:news"),
        InlineKeyboardButton(text="🔗 Links", callback_data="menu:links"),
    ])

    community: list[InlineKeyboardButton] = []
    if telegram.chat_url:
        community.append(InlineKeyboardButton(text="💬 Chat", url=telegram.chat_url))
    if telegram.channel_username:
        community.append(
            InlineKeyboardButton(text="📣 Channel", url=f"https://t.me/{telegram.channel_username}")
        )
    if community:
        buttons.append(community)

    if is_admin:
        buttons.append([InlineKeyboardButton(text="🛠 Admin panel", callback_data="admin:panel")])

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_lessons_keyboard(
    section: Section,
    lessons: list[LessonView],
    page: int,
    total_pages: int,
) -> InlineKeyboardMarkup:
    """One button per lesson on the page, then page navigation."""
    buttons: list[list[InlineKeyboardButton]] = [
        [
            InlineKeyboardButton(
                text=shorten(f"{lesson.ord}. {lesson.title}"),
                callback_data=f"lesson:{section.value}:{lesson.ord}",
            )
        ]
        for lesson in lessons
    ]

    if total_pages > 1:
        nav: list[InlineKeyboardButton] = []
        if page > 0:
            nav.append(
                InlineKeyboardButton(text="‹ Prev", callback_data=f"lessons:{section.value}:{page - 1}")
            )
        nav.append(InlineKeyboardButton(text=f"{page + 1}/{total_pages}", callback_data="noop"))
        if page < total_pages - 1:
            nav.append(
                InlineKeyboardButton(text="Next ›", callback_data=f"lessons:{section.value}:{page + 1}")
            )
        buttons.append(nav)

    buttons.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_lesson_keyboard(
    lesson: LessonView,
    prev_ord: int | None,
    next_ord: int | None,
    page: int = 0,
) -> InlineKeyboardMarkup:
    """Lesson card: open the post, step through the section, go back."""
    section = lesson.section.value
    buttons: list[list[InlineKeyboardButton]] = []

    if lesson.post_url:
        buttons.append([InlineKeyboardButton(text="📖 Open lesson", url=lesson.post_url)])

    nav: list[InlineKeyboardButton] = []
    if prev_ord is not None:
        nav.append(InlineKeyboardButton(text="‹ Previous", callback_data=f"lesson:{section}:{prev_ord}"))
    if next_ord is not None:
        nav.append(InlineKeyboardButton(text="Next ›", callback_data=f"lesson:{section}:{next_ord}"))
    if nav:
        buttons.append(nav)

    buttons.append(_back_row(f"lessons:{section}:{page}", "« All lessons"))
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_continue_keyboard(records: list[ProgressView]) -> InlineKeyboardMarkup:
    """Jump back to the last opened lesson of each section."""
    buttons: list[list[InlineKeyboardButton]] = []
    for record in records:
        label = f"{SECTION_ICONS[record.section]} {record.ord}. {record.title or '(removed)'}"
        buttons.append([
            InlineKeyboardButton(
                text=shorten(label),
                callback_data=f"lesson:{record.section.value}:{record.ord}",
            )
        ])
    buttons.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_news_keyboard(news: list[NewsView]) -> InlineKeyboardMarkup:
    """URL buttons to the newest channel posts."""
    buttons = [
        [
            InlineKeyboardButton(
                text=f"📰 {item.created_at:%d.%m.%Y} · post {item.message_id}",
                url=item.post_url,
            )
        ]
        for item in news
        if item.post_url
    ]
    buttons.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_links_keyboard(links: list[LinkView]) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text=shorten(link.title), url=link.url)]
        for link in links
    ]
    buttons.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_admin_keyboard(has_pending: bool = False) -> InlineKeyboardMarkup:
    """Admin panel: start an ingestion or cancel the pending one."""
    buttons = [
        [
            InlineKeyboardButton(
                text=f"➕ Lesson: {SECTION_TITLES[section]}",
                callback_data=f"admin:add:{section.value}",
            )
        ]
        for section in Section
    ]
    buttons.append([InlineKeyboardButton(text="➕ News post", callback_data="admin:add:news")])
    if has_pending:
        buttons.append([InlineKeyboardButton(text="✖️ Cancel pending", callback_data="admin:cancel")])
    buttons.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def build_back_keyboard() -> InlineKeyboardMarkup:
    """Build simple back to menu keyboard."""
    return InlineKeyboardMarkup(inline_keyboard=[_back_row()])


__all__ = [
    "build_admin_keyboard",
    "build_back_keyboard",
    "build_continue_keyboard",
    "build_lesson_keyboard",
    "build_lessons_keyboard",
    "build_links_keyboard",
    "build_main_menu_keyboard",
    "build_news_keyboard",
    "webapp_url",
]
