"""Best-effort activity log for Mini App users."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..db import execute

logger = logging.getLogger(__name__)


async def log_activity(
    user_id: int,
    action: str,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Write one record to user_activity. Failures never reach the caller."""
    try:
        await execute(
            """
            INSERT INTO user_activity (user_id, action, details, ip_address, user_agent)
            VALUES (%s, %s, %s::jsonb, %s, %s)
            """,
            [
                user_id,
                action,
                json.dumps(details or {}, default=str),
                ip_address,
                user_agent,
            ],
        )
    except Exception as exc:
        logger.warning("Failed to write user_activity (%s): %s", action, exc)
