"""
FastAPI REST API and Telegram bot module for lessonbot.
"""

from .main import app, create_app
from .routes import admin_router, content_router, health_router

__all__ = [
    "admin_router",
    "app",
    "content_router",
    "create_app",
    "health_router",
]

# Telegram bot components are imported separately to avoid
# loading aiogram when only FastAPI is needed:
#
# from .telegram_bot import main as run_telegram_bot
# from .bot import router as telegram_router
