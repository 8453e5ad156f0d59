"""Course lessons, channel news and reading progress over Telegram and HTTP."""
