"""Due-reminder feeds consumed by the NotificationPoller."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

import httpx

from eventdash.auth import USER_HEADER
from eventdash.config import settings
from eventdash.timeutil import parse_instant

logger = logging.getLogger(__name__)

STANDARD_TIMEOUT = 10.0


@dataclass(frozen=True)
class DueReminder:
    reminder_id: int
    event_id: int
    event_title: str
    reminder_time: datetime
    user_id: int


class FeedError(RuntimeError):
    """The feed could not be read or the acknowledgment was not stored."""


class ReminderFeed(Protocol):
    async def due_unseen(self) -> list[DueReminder]: ...

    async def mark_seen(self, reminder_ids: Optional[list[int]] = None) -> int: ...


class HttpReminderFeed:
    """Reads the due feed of one user over the HTTP API."""

    def __init__(
        self,
        user_id: int,
        base_url: str = settings.API_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = STANDARD_TIMEOUT,
    ):
        self.user_id = user_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @property
    def _headers(self) -> dict[str, str]:
        return {USER_HEADER: str(self.user_id)}

    async def due_unseen(self) -> list[DueReminder]:
        try:
            response = await self._client.get("/api/reminders/due", headers=self._headers)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FeedError("Due-reminder request timed out") from exc
        except httpx.HTTPError as exc:
            raise FeedError(f"Due-reminder request failed: {exc}") from exc

        return [
            DueReminder(
                reminder_id=item["reminderId"],
                event_id=item["eventId"],
                event_title=item.get("eventTitle") or "Untitled Event",
                reminder_time=parse_instant(item["reminderTime"]),
                user_id=item["userId"],
            )
            for item in response.json()
        ]

    async def mark_seen(self, reminder_ids: Optional[list[int]] = None) -> int:
        try:
            response = await self._client.post(
                "/api/reminders/seen",
                headers=self._headers,
                json={"reminderIds": reminder_ids},
            )
        except httpx.HTTPError as exc:
            raise FeedError(f"Mark-seen request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400 or not body.get("success"):
            error = body.get("error") or {}
            raise FeedError(error.get("message") or f"Mark-seen failed with HTTP {response.status_code}")
        return body["data"]["updated"]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
