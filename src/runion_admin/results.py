"""Structured results returned across the user-facing boundary."""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable

from pydantic import BaseModel, Field

from runion_admin.errors import UnauthorizedError

logger = logging.getLogger(__name__)


class ActionResult(BaseModel):
    """Outcome of an admin action.

    Attributes:
        success: Whether the action completed.
        message: Human-readable summary on success.
        error: Failure description (underlying message included).
        data: Action payload (backup text, CSV export, log entries, ...).
        warnings: Failures that were tolerated along the way.
    """

    success: bool
    message: str | None = None
    error: str | None = None
    data: Any = None
    warnings: list[str] = Field(default_factory=list)


async def run_action(context: str, operation: Awaitable[Any]) -> ActionResult:
    """Await ``operation`` and convert its outcome into an ``ActionResult``.

    The operation may return an ``ActionResult`` (passed through) or any
    payload (wrapped as ``data``).  Exceptions are logged with ``context``
    and a timestamp, then reported as ``success=False``.
    """
    try:
        payload = await operation
    except UnauthorizedError as e:
        logger.warning("[%s] %s", context, e)
        return ActionResult(success=False, error=str(e))
    except Exception as e:
        timestamp = datetime.now(timezone.utc).isoformat()
        logger.exception("[%s] failed at %s: %s", context, timestamp, e)
        return ActionResult(success=False, error=f"{context} failed: {e}")

    if isinstance(payload, ActionResult):
        return payload
    return ActionResult(success=True, data=payload)
