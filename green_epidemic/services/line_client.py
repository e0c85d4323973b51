"""
LineClient — Push messages through the LINE Messaging API.

Delivers Notification records created by the proximity fan-out.

Graceful degradation: if LINE_CHANNEL_ACCESS_TOKEN is not set, pushes are
simulated (logged and reported as delivered) so local dev and tests work
without a LINE channel.

dispatch_pending() drains every undelivered LINE notification once and
records the outcome on the notification itself (sent / sent_at / error).
Failed notifications keep their error and are not retried automatically.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from motor.motor_asyncio import AsyncIOMotorDatabase

from green_epidemic.core.config import settings
from green_epidemic.models.notification import DispatchResult
from green_epidemic.services.queries import (
    NEWEST_CREATED_FIRST,
    parse_object_id,
    undelivered_notifications,
)

logger = logging.getLogger(__name__)

LINE_PUSH_URL = "https://api.line.me/v2/bot/message/push"
_MAX_TEXT_LENGTH = 5000  # LINE text message limit
_DISPATCH_BATCH = 500


class LineClient:
    """
    Thin async wrapper around the LINE push endpoint.

    push() never raises; it returns None on success or an error string
    suitable for storing on the notification.
    """

    def __init__(self) -> None:
        self.access_token = settings.line_channel_access_token
        self.enabled = bool(self.access_token)

        if not self.enabled:
            logger.warning(
                "LINE_CHANNEL_ACCESS_TOKEN not set — LINE deliveries will be simulated."
            )

    async def push(self, line_user_id: str, title: str, message: str) -> Optional[str]:
        text = f"{title}\n\n{message}"[:_MAX_TEXT_LENGTH]

        if not self.enabled:
            logger.info("[SIMULATED] LINE push to %s: %s", line_user_id, title)
            return None

        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.post(
                    LINE_PUSH_URL,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json={"to": line_user_id, "messages": [{"type": "text", "text": text}]},
                )
                response.raise_for_status()
                return None

            except httpx.HTTPStatusError as exc:
                logger.error(
                    "LINE API error: %s — %s",
                    exc.response.status_code,
                    exc.response.text[:200],
                )
                return f"LINE API error {exc.response.status_code}"
            except httpx.HTTPError as exc:
                logger.error("LINE request failed: %s", exc)
                return f"LINE request failed: {exc}"


# Module-level singleton
line_client = LineClient()


async def dispatch_pending(db: AsyncIOMotorDatabase, client: LineClient = line_client) -> DispatchResult:
    """Attempt delivery of every LINE notification that has never been tried."""
    cursor = (
        db["notifications"]
        .find(undelivered_notifications("LINE"))
        .sort(NEWEST_CREATED_FIRST)
        .limit(_DISPATCH_BATCH)
    )
    pending = [doc async for doc in cursor]

    line_ids: dict[str, Optional[str]] = {}
    sent = failed = 0

    for notification in pending:
        user_id = notification["user_id"]
        if user_id not in line_ids:
            oid = parse_object_id(user_id)
            user = await db["users"].find_one({"_id": oid}) if oid else None
            line_ids[user_id] = (user or {}).get("line_user_id")

        line_user_id = line_ids[user_id]
        if not line_user_id:
            error = "User has no linked LINE account"
        else:
            error = await client.push(line_user_id, notification["title"], notification["message"])

        update = {"sent": error is None, "error": error}
        if error is None:
            update["sent_at"] = datetime.now(tz=timezone.utc)
            sent += 1
        else:
            failed += 1
        await db["notifications"].update_one({"_id": notification["_id"]}, {"$set": update})

    logger.info("LINE dispatch: %d attempted, %d sent, %d failed", len(pending), sent, failed)
    return DispatchResult(attempted=len(pending), sent=sent, failed=failed)
