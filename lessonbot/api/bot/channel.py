"""
Channel post handler: posts carrying the news tag are filed as news.

The bot has to be an admin of the channel to receive its posts.
"""

from __future__ import annotations

from aiogram import Router
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings
from ...db.repositories import NewsRepository
from ...services.ingestion import IngestionMachine, has_news_tag
from .utils import LOGGER

router = Router(name="channel")


@router.channel_post()
async def on_channel_post(
    message: Message,
    session: AsyncSession,
    settings: Settings,
    ingestion: IngestionMachine,
) -> None:
    """File a tagged post of the course channel as news, once."""
    if not ingestion.forward_matches_channel(message.chat.id, message.chat.username):
        return
    if not has_news_tag(message.text or message.caption, settings.telegram.news_tag):
        return

    created = await NewsRepository(session).add_if_absent(message.message_id)
    if created:
        LOGGER.info("Channel post %d filed as news", message.message_id)


__all__ = ["on_channel_post", "router"]
