"""
miniapp-api — backend для Telegram Mini App.

Валидация initData, JWT-сессии, пользователи и журнал активности в PostgreSQL.
"""

__version__ = "1.0.0"
