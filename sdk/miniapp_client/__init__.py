"""
miniapp-client — Python SDK для miniapp-api.

Использование:
    from miniapp_client import MiniAppClient

    async with MiniAppClient("http://localhost:3000") as api:
        user = await api.login(init_data)
"""

from .client import MiniAppClient
from .exceptions import MiniAppAPIError

__all__ = ["MiniAppClient", "MiniAppAPIError"]
