"""
Telegram bot initialization and runner with middleware and lifecycle management.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BotCommand, BotCommandScopeChat, Update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..db.session import create_engine, create_session_factory, init_models
from ..logger import setup_logging
from ..services.guards import AdminGuard
from ..services.ingestion import IngestionMachine, PendingActionRegistry
from .bot import router as bot_router

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Middleware
# -----------------------------------------------------------------------------


class DatabaseMiddleware:
    """
    Middleware that injects a database session into each handler.

    The session is committed on success and rolled back on exception.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def __call__(
        self,
        handler: Callable[[Update, dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: dict[str, Any],
    ) -> Any:
        """Process update with database session."""
        async with self._session_factory() as session:
            data["session"] = session
            try:
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise


class LoggingMiddleware:
    """
    Middleware that logs all incoming updates.
    """

    async def __call__(
        self,
        handler: Callable[[Update, dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: dict[str, Any],
    ) -> Any:
        """Log and process update."""
        user_id = None
        update_type = "unknown"

        if event.message:
            user_id = event.message.from_user.id if event.message.from_user else None
            update_type = "forward" if event.message.forward_origin else "message"
            text = event.message.text or event.message.caption or ""
            LOGGER.info(
                "Update [%s] from user %s: %s",
                update_type,
                user_id,
                text[:50] if text else "(no text)",
            )
        elif event.callback_query:
            user_id = event.callback_query.from_user.id if event.callback_query.from_user else None
            update_type = "callback"
            LOGGER.info(
                "Update [%s] from user %s: %s",
                update_type,
                user_id,
                event.callback_query.data or "(no data)",
            )
        elif event.channel_post:
            update_type = "channel_post"
            LOGGER.debug(
                "Update [%s] from chat %s: post %d",
                update_type,
                event.channel_post.chat.id,
                event.channel_post.message_id,
            )

        try:
            return await handler(event, data)
        except Exception as exc:
            LOGGER.exception(
                "Error processing update [%s] from user %s: %s",
                update_type,
                user_id,
                exc,
            )
            raise


class ErrorHandlerMiddleware:
    """
    Middleware that handles errors gracefully and sends user-friendly messages.
    """

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def __call__(
        self,
        handler: Callable[[Update, dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: dict[str, Any],
    ) -> Any:
        """Handle errors and send user feedback."""
        try:
            return await handler(event, data)
        except Exception as exc:
            LOGGER.exception("Unhandled error in handler: %s", exc)

            # Channel posts get no reply
            chat_id = None
            if event.message and event.message.chat:
                chat_id = event.message.chat.id
            elif event.callback_query and event.callback_query.message:
                chat_id = event.callback_query.message.chat.id

            if chat_id:
                try:
                    await self._bot.send_message(
                        chat_id,
                        "Sorry, something went wrong. Please try again later.",
                        parse_mode=None,
                    )
                except TelegramAPIError as send_exc:
                    LOGGER.warning("Could not report the error to chat %s: %s", chat_id, send_exc)

            # Re-raise to let dispatcher handle it
            raise


# -----------------------------------------------------------------------------
# Bot Setup
# -----------------------------------------------------------------------------


def create_bot(settings: Settings) -> Bot:
    """
    Create and configure the Telegram bot instance.

    Args:
        settings: Application settings containing the bot token.

    Returns:
        Configured Bot instance.

    Raises:
        ValueError: If bot token is not configured.
    """
    if not settings.telegram.token:
        raise ValueError(
            "Telegram bot token is not configured. Set TELEGRAM__TOKEN environment variable."
        )

    return Bot(
        token=settings.telegram.token,
        default=DefaultBotProperties(
            parse_mode=ParseMode.MARKDOWN_V2,
            link_preview_is_disabled=True,
        ),
    )


def create_ingestion(settings: Settings, admin_guard: AdminGuard) -> IngestionMachine:
    """Ingestion machine bound to the configured channel."""
    return IngestionMachine(
        PendingActionRegistry(),
        admin_guard,
        channel_username=settings.telegram.channel_username,
        channel_id=settings.telegram.channel_id,
    )


def create_dispatcher(
    bot: Bot,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> Dispatcher:
    """
    Create and configure the dispatcher with routers and middleware.

    `settings`, `admin_guard` and `ingestion` are passed as workflow data, so
    handlers and filters receive them by argument name.

    Args:
        bot: The Bot instance.
        session_factory: SQLAlchemy async session factory.
        settings: Application settings.

    Returns:
        Configured Dispatcher instance.
    """
    admin_guard = AdminGuard(settings.telegram.admin_ids)
    if not admin_guard.admin_ids:
        LOGGER.warning("TELEGRAM__ADMIN_IDS is empty: admin commands are disabled")

    dp = Dispatcher(
        settings=settings,
        admin_guard=admin_guard,
        ingestion=create_ingestion(settings, admin_guard),
    )

    # Register middleware (order matters - executed in order)
    dp.update.middleware(LoggingMiddleware())
    dp.update.middleware(DatabaseMiddleware(session_factory))
    dp.update.middleware(ErrorHandlerMiddleware(bot))

    # Include routers
    dp.include_router(bot_router)

    return dp


USER_COMMANDS = [
    BotCommand(command="start", description="Show the menu"),
    BotCommand(command="help", description="Show help information"),
]

ADMIN_COMMANDS = [
    *USER_COMMANDS,
    BotCommand(command="admin", description="Admin panel"),
    BotCommand(command="add_lesson", description="Add a lesson: <section> [<ord> | <title>]"),
    BotCommand(command="add_news", description="File a channel post as news"),
    BotCommand(command="pending", description="Show the pending action"),
    BotCommand(command="cancel", description="Cancel the pending action"),
    BotCommand(command="del_lesson", description="Delete a lesson: <section> <ord>"),
    BotCommand(command="add_link", description="Add a link: <title> | <url> [| <ord>]"),
    BotCommand(command="del_link", description="Delete a link: <id>"),
    BotCommand(command="del_news", description="Delete a news item: <message_id>"),
]


async def set_bot_commands(bot: Bot, admin_ids: list[int]) -> None:
    """
    Set bot commands visible in Telegram UI.

    Admins additionally get the admin commands in their private chat.
    """
    await bot.set_my_commands(USER_COMMANDS)
    for admin_id in admin_ids:
        try:
            await bot.set_my_commands(ADMIN_COMMANDS, scope=BotCommandScopeChat(chat_id=admin_id))
        except TelegramAPIError as exc:
            # The admin has not started the bot yet
            LOGGER.warning("Could not set admin commands for %d: %s", admin_id, exc)
    LOGGER.info("Bot commands registered: %d commands", len(USER_COMMANDS))


# -----------------------------------------------------------------------------
# Application Lifecycle
# -----------------------------------------------------------------------------


@asynccontextmanager
async def create_app_context(
    settings: Settings,
) -> AsyncIterator[tuple[Bot, Dispatcher, async_sessionmaker[AsyncSession]]]:
    """
    Create application context with all dependencies.

    Yields:
        Tuple of (bot, dispatcher, session_factory)
    """
    # Create database engine and session factory
    engine = create_engine(settings)
    await init_models(engine)
    session_factory = create_session_factory(engine)

    # Create bot and dispatcher
    bot = create_bot(settings)
    dp = create_dispatcher(bot, session_factory, settings)

    LOGGER.info("Application context initialized")

    try:
        yield bot, dp, session_factory
    finally:
        LOGGER.info("Cleaning up application context...")

        # Dispose database engine
        await engine.dispose()

        # Close bot session
        await bot.session.close()

        LOGGER.info("Application context cleaned up")


async def run_polling(settings: Settings) -> None:
    """
    Run the bot in polling mode.

    This is the main entry point for running the bot.

    Args:
        settings: Application settings.
    """
    async with create_app_context(settings) as (bot, dp, _):
        # Set bot commands
        await set_bot_commands(bot, settings.telegram.admin_ids)

        # Log bot info
        bot_info = await bot.get_me()
        LOGGER.info(
            "Starting bot @%s (ID: %d) in polling mode",
            bot_info.username,
            bot_info.id,
        )

        # Start polling
        try:
            await dp.start_polling(
                bot,
                allowed_updates=dp.resolve_used_update_types(),
                drop_pending_updates=True,
            )
        except asyncio.CancelledError:
            LOGGER.info("Polling cancelled, shutting down...")
        finally:
            await dp.stop_polling()


# -----------------------------------------------------------------------------
# Entry Point
# -----------------------------------------------------------------------------


def main(settings: Settings | None = None) -> int:
    """
    Main entry point for running the Telegram bot.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    settings = settings or get_settings()
    setup_logging(settings)

    LOGGER.info(
        "Starting %s Telegram bot v%s (%s)",
        settings.app.name,
        settings.app.version,
        settings.app.environment.value,
    )

    # Validate configuration
    if not settings.telegram.token:
        LOGGER.error("Telegram bot token not configured. Set TELEGRAM__TOKEN environment variable.")
        return 1

    # Setup signal handlers
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def signal_handler(sig: int, _: Any) -> None:
        LOGGER.info("Received signal %d, initiating shutdown...", sig)
        for task in asyncio.all_tasks(loop):
            task.cancel()

    if sys.platform != "win32":
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    try:
        loop.run_until_complete(run_polling(settings))
        return 0
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user")
        return 0
    except Exception as exc:
        LOGGER.exception("Fatal error: %s", exc)
        return 1
    finally:
        loop.close()


if __name__ == "__main__":
    sys.exit(main())
