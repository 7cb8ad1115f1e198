"""Client-side notification poller.

One poller serves one signed-in user (one per open dashboard; pollers do not
coordinate). It cycles ``IDLE -> POLLING -> IDLE`` on a fixed interval,
starting with an immediate tick, until ``stop()`` moves it to ``STOPPED``.

Each tick replaces ``items`` (the bell contents: every due, unseen reminder)
and raises ``on_alert`` once for each reminder that is still fresh, i.e.
``reminder_time <= now <= reminder_time + freshness``. Already-alerted ids
are kept only while their freshness window is open, so the ledger stays
bounded.
"""
import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from eventdash.config import settings
from eventdash.notifier.feed import DueReminder, ReminderFeed
from eventdash.timeutil import utcnow

logger = logging.getLogger(__name__)


class PollerState(str, enum.Enum):
    idle = "idle"
    polling = "polling"
    stopped = "stopped"


@dataclass(frozen=True)
class AlertItem:
    reminder_id: int
    event_id: int
    event_title: str
    reminder_time: datetime

    @classmethod
    def from_due(cls, due: DueReminder) -> "AlertItem":
        return cls(due.reminder_id, due.event_id, due.event_title, due.reminder_time)

    @property
    def message(self) -> str:
        return f"[REMINDER] {self.event_title}"


class AcknowledgeError(RuntimeError):
    """Marking reminders as seen failed; they stay visible and unseen."""


class NotificationPoller:
    def __init__(
        self,
        feed: ReminderFeed,
        on_alert: Optional[Callable[[AlertItem], Any]] = None,
        interval_seconds: float = settings.POLL_INTERVAL_SECONDS,
        freshness_seconds: float = settings.ALERT_FRESHNESS_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.feed = feed
        self.on_alert = on_alert
        self.interval_seconds = interval_seconds
        self.freshness = timedelta(seconds=freshness_seconds)
        self._clock = clock

        self.state = PollerState.idle
        self.items: list[AlertItem] = []
        self._alerted: dict[int, datetime] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Tick immediately, then every ``interval_seconds``."""
        if self.state is PollerState.stopped:
            raise RuntimeError("Poller has been stopped; create a new one")
        if self.is_running:
            logger.debug("NotificationPoller already running")
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("NotificationPoller started (interval %ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the timer. A scan already in flight finishes but its result is dropped."""
        self.state = PollerState.stopped
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("NotificationPoller stopped")

    async def _loop(self) -> None:
        while self.state is not PollerState.stopped:
            await self.tick()
            await asyncio.sleep(self.interval_seconds)

    async def tick(self) -> list[AlertItem]:
        """Run one poll and return the alerts raised by it."""
        if self.state is PollerState.stopped:
            return []
        self.state = PollerState.polling
        try:
            # Shielded so that stop() cancels the loop, not the request itself
            scan = asyncio.ensure_future(self.feed.due_unseen())
            scan.add_done_callback(_consume_result)
            due = await asyncio.shield(scan)
        except asyncio.CancelledError:
            raise
        except Exception:
            # The next tick retries
            logger.exception("Reminder poll failed")
            return []
        finally:
            if self.state is PollerState.polling:
                self.state = PollerState.idle

        if self.state is PollerState.stopped:
            logger.debug("Discarding poll result after stop")
            return []
        return self._apply(due, self._clock())

    def _apply(self, due: list[DueReminder], now: datetime) -> list[AlertItem]:
        self.items = [AlertItem.from_due(d) for d in due]

        # Forget ids whose freshness window has closed
        self._alerted = {
            rid: at for rid, at in self._alerted.items() if now <= at + self.freshness
        }

        fresh = [
            item for item in self.items
            if item.reminder_time <= now <= item.reminder_time + self.freshness
            and item.reminder_id not in self._alerted
        ]
        for item in fresh:
            self._alerted[item.reminder_id] = item.reminder_time
            logger.info("%s (reminder %s, event %s)", item.message, item.reminder_id, item.event_id)
            if self.on_alert:
                try:
                    self.on_alert(item)
                except Exception:
                    # A failing alert handler must not end the polling loop
                    logger.exception("Alert handler failed for reminder %s", item.reminder_id)
        return fresh

    async def acknowledge_all(self) -> int:
        """Mark every due reminder seen (the bell was opened) and clear the bell.

        Raises AcknowledgeError when the mark fails; ``items`` is left untouched.
        """
        try:
            updated = await self.feed.mark_seen()
        except Exception as exc:
            logger.warning("Failed to mark reminders seen: %s", exc)
            raise AcknowledgeError(str(exc)) from exc
        self.items = []
        return updated

    async def open_alert(self, reminder_id: int, navigate: Callable[[int], Any]) -> bool:
        """Navigate to the reminder's event, then acknowledge only that reminder.

        Navigation never waits on the acknowledgment: a failed mark is logged,
        the item stays in ``items``, and False is returned.
        """
        item = next((i for i in self.items if i.reminder_id == reminder_id), None)
        if item is None:
            raise KeyError(reminder_id)

        result = navigate(item.event_id)
        if inspect.isawaitable(result):
            await result

        try:
            await self.feed.mark_seen([reminder_id])
        except Exception as exc:
            logger.warning("Could not mark reminder %s seen: %s", reminder_id, exc)
            return False
        self.items = [i for i in self.items if i.reminder_id != reminder_id]
        return True


def _consume_result(task: asyncio.Future) -> None:
    # scans abandoned by stop() are never awaited
    if not task.cancelled():
        task.exception()
