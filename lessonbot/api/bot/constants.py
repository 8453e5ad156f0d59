"""
Bot constants and configuration values.
"""

from ...db.models import Section

SECTION_TITLES = {
    Section.PREP: "Preparatory course",
    Section.STEAM: "STEAM course",
}

SECTION_ICONS = {
    Section.PREP: "🧩",
    Section.STEAM: "🚀",
}

# Lessons listed per page in the section browser
LESSONS_PAGE_SIZE = 8

# News posts shown in the bot (the API serves more)
NEWS_BOT_LIMIT = 10

# Button labels are cut to keep keyboards readable
BUTTON_TITLE_MAX = 40


__all__ = [
    "BUTTON_TITLE_MAX",
    "LESSONS_PAGE_SIZE",
    "NEWS_BOT_LIMIT",
    "SECTION_ICONS",
    "SECTION_TITLES",
]
