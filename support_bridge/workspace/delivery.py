"""
How Telegram updates reach the bridge.

With a public https origin configured the bot is switched to webhook mode
and updates arrive on POST /telegram/<token>. Otherwise any webhook is
removed and UpdatePoller long-polls getUpdates in a background task.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, Optional

from support_bridge.logging_config import logger
from support_bridge.settings import Settings

from .client import TelegramWorkspace, WorkspaceAPIError


MODE_WEBHOOK = "webhook"
MODE_POLLING = "polling"

UpdateHandler = Callable[[Dict[str, Any]], Awaitable[None]]


async def configure_delivery(workspace: TelegramWorkspace, settings: Settings) -> str:
    """
    Point Telegram at the right delivery mode and return it.
    setWebhook is only called when the registered URL differs.
    """
    info = await workspace.get_webhook_info()
    logger.info(
        "Webhook info: url=%s pending=%s last_error_date=%s last_error_message=%s",
        info.get("url") or "-",
        info.get("pending_update_count"),
        info.get("last_error_date"),
        info.get("last_error_message"),
    )

    if settings.wants_webhook:
        webhook_url = settings.webhook_url or ""
        if info.get("url") != webhook_url:
            await workspace.set_webhook(webhook_url)
            logger.info("Webhook set for origin %s", settings.public_origin)
        else:
            logger.info("Webhook already points at origin %s", settings.public_origin)
        return MODE_WEBHOOK

    if info.get("url"):
        await workspace.delete_webhook(drop_pending_updates=False)
        logger.info("Webhook deleted, switching to long polling")
    return MODE_POLLING


class UpdatePoller:
    def __init__(
        self,
        workspace: TelegramWorkspace,
        handler: UpdateHandler,
        *,
        timeout: int = 30,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
    ) -> None:
        self._workspace = workspace
        self._handler = handler
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._max_retry_delay = max_retry_delay
        self._offset: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    async def poll_once(self) -> int:
        """
        Fetch one batch and hand each update to the handler in order.
        Returns the number of updates seen. WorkspaceAPIError propagates.
        """
        updates = await self._workspace.get_updates(offset=self._offset, timeout=self._timeout)
        for raw in updates:
            update_id = raw.get("update_id")
            if isinstance(update_id, int):
                self._offset = update_id + 1
            try:
                await self._handler(raw)
            except Exception:
                logger.exception("Update %s handler failed", update_id)
        return len(updates)

    async def run(self) -> None:
        delay = self._retry_delay
        logger.info("Bot started with long polling")
        while not self._stopped:
            try:
                await self.poll_once()
            except WorkspaceAPIError as exc:
                logger.warning("getUpdates failed: %s; retrying in %.1fs", exc, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
                continue
            delay = self._retry_delay

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stopped = False
            self._task = asyncio.create_task(self.run(), name="telegram-update-poller")
        return self._task

    async def stop(self) -> None:
        self._stopped = True
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Long polling stopped")


__all__ = [
    "MODE_POLLING",
    "MODE_WEBHOOK",
    "UpdateHandler",
    "UpdatePoller",
    "configure_delivery",
]
