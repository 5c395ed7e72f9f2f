from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Optional
import aiohttp

from config import Settings

LINE_PUSH_URL = "https://api.line.me/v2/bot/message/push"

# strong references so pending pushes are not garbage collected
_pending: set[asyncio.Task] = set()


class LineNotifier:
    """
    Pushes admin notices through the LINE Messaging API.
    If the channel token or recipients are missing, pushes are skipped quietly.
    """
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.token = self.settings.env.LINE_CHANNEL_ACCESS_TOKEN
        self.recipients = self.settings.get_line_recipients()

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.recipients)

    async def push(self, text: str) -> bool:
        if not self.is_configured:
            logging.info("LINE notifications are not configured, skipping")
            return False
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }
        timeout = aiohttp.ClientTimeout(total=10)
        async with aiohttp.ClientSession(timeout=timeout) as s:
            for recipient in self.recipients:
                payload = {"to": recipient, "messages": [{"type": "text", "text": text}]}
                async with s.post(LINE_PUSH_URL, json=payload, headers=headers) as r:
                    r.raise_for_status()
        return True

    async def new_seller_registered(self, email: str, full_name: str | None, registration_method: str = "email") -> bool:
        text = (
            "New seller registration\n"
            f"Name: {full_name or '-'}\n"
            f"Email: {email}\n"
            f"Method: {registration_method}\n"
            "Please review the account in the admin panel."
        )
        return await self.push(text)

    async def profile_completed(self, email: str, full_name: str | None, phone: str | None = None) -> bool:
        text = (
            "Seller profile completed\n"
            f"Name: {full_name or '-'}\n"
            f"Email: {email}\n"
            f"Phone: {phone or '-'}\n"
            "The seller is waiting for approval."
        )
        return await self.push(text)


def _log_outcome(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logging.error(f"Notification {task.get_name()} failed: {exc!r}", exc_info=exc)


def dispatch_notification(coro: Awaitable, name: str = "notification") -> asyncio.Task:
    """Run a push in the background. Failures are logged, never raised to the caller."""
    task = asyncio.ensure_future(coro)
    task.set_name(name)
    _pending.add(task)
    task.add_done_callback(_log_outcome)
    return task


async def wait_for_notifications() -> None:
    if _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)


def get_notifier() -> LineNotifier:
    return LineNotifier()
