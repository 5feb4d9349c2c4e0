"""
Telegram Bot API client for the support group.

Thin async wrapper over the handful of Bot API methods the bridge needs.
Every call goes through the shared httpx.AsyncClient, so its timeout bounds
each request. Failures of any kind (transport error, non-200 status,
"ok": false body) surface as WorkspaceAPIError; callers decide whether a
failure is fatal or best-effort.

API reference: https://core.telegram.org/bots/api
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from support_bridge.logging_config import logger
from support_bridge.models import CardReference

from .keyboards import remove_keyboard


DEFAULT_API_BASE = "https://api.telegram.org"
DEFAULT_ALLOWED_UPDATES = ("message", "callback_query")
THREAD_CLOSED_TEXT = "Dialog closed."


class WorkspaceAPIError(Exception):
    """
    A Bot API call did not succeed.
    """

    def __init__(
        self,
        method: str,
        description: str,
        *,
        error_code: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"{method}: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code
        self.status_code = status_code


class TelegramWorkspace:
    def __init__(
        self,
        client: httpx.AsyncClient,
        bot_token: str,
        *,
        api_base: str = DEFAULT_API_BASE,
    ) -> None:
        self._client = client
        self._bot_token = bot_token
        self._api_base = api_base.rstrip("/")

    def _method_url(self, method: str) -> str:
        return f"{self._api_base}/bot{self._bot_token}/{method}"

    async def call(
        self,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Invoke a Bot API method and return its "result" field.
        """
        request_timeout: Any = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
        try:
            response = await self._client.post(
                self._method_url(method),
                json=payload or {},
                timeout=request_timeout,
            )
        except httpx.TimeoutException:
            raise WorkspaceAPIError(method, "request timed out")
        except httpx.HTTPError as exc:
            raise WorkspaceAPIError(method, f"request failed: {exc.__class__.__name__}")

        try:
            body = response.json()
        except ValueError:
            raise WorkspaceAPIError(
                method,
                f"HTTP {response.status_code}: non-JSON response",
                status_code=response.status_code,
            )

        if response.status_code != 200 or not isinstance(body, dict) or not body.get("ok"):
            description = (
                body.get("description") if isinstance(body, dict) else None
            ) or f"HTTP {response.status_code}"
            error_code = body.get("error_code") if isinstance(body, dict) else None
            raise WorkspaceAPIError(
                method,
                description,
                error_code=error_code,
                status_code=response.status_code,
            )

        logger.debug("Telegram %s ok", method)
        return body.get("result")

    # Messages and topics

    async def create_thread(self, group_id: Union[int, str], title: str) -> int:
        result = await self.call("createForumTopic", {"chat_id": group_id, "name": title})
        return int(result["message_thread_id"])

    async def send_message(
        self,
        group_id: Union[int, str],
        text: str,
        *,
        thread_id: Optional[int] = None,
        controls: Optional[Dict[str, Any]] = None,
    ) -> CardReference:
        payload: Dict[str, Any] = {"chat_id": group_id, "text": text}
        if thread_id is not None:
            payload["message_thread_id"] = thread_id
        if controls is not None:
            payload["reply_markup"] = controls
        result = await self.call("sendMessage", payload)
        return CardReference(chat_id=result["chat"]["id"], message_id=result["message_id"])

    async def edit_message(self, ref: CardReference, text: str) -> None:
        """
        Replace the text of a bot message. Inline buttons are dropped since
        no reply_markup is sent along.
        """
        await self.call(
            "editMessageText",
            {"chat_id": ref.chat_id, "message_id": ref.message_id, "text": text},
        )

    async def strip_controls(
        self,
        group_id: Union[int, str],
        thread_id: int,
        text: str = THREAD_CLOSED_TEXT,
    ) -> CardReference:
        # A reply keyboard can only be removed by a new message carrying
        # remove_keyboard.
        return await self.send_message(
            group_id, text, thread_id=thread_id, controls=remove_keyboard()
        )

    async def pin_message(self, ref: CardReference) -> None:
        await self.call(
            "pinChatMessage",
            {
                "chat_id": ref.chat_id,
                "message_id": ref.message_id,
                "disable_notification": True,
            },
        )

    async def answer_callback(self, callback_id: str, text: Optional[str] = None) -> None:
        payload: Dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self.call("answerCallbackQuery", payload)

    # Update delivery

    async def get_webhook_info(self) -> Dict[str, Any]:
        result = await self.call("getWebhookInfo")
        return result or {}

    async def set_webhook(
        self,
        url: str,
        *,
        allowed_updates: Sequence[str] = DEFAULT_ALLOWED_UPDATES,
    ) -> None:
        await self.call(
            "setWebhook",
            {"url": url, "allowed_updates": list(allowed_updates)},
        )

    async def delete_webhook(self, *, drop_pending_updates: bool = False) -> None:
        await self.call("deleteWebhook", {"drop_pending_updates": drop_pending_updates})

    async def get_updates(
        self,
        *,
        offset: Optional[int] = None,
        timeout: int = 30,
        allowed_updates: Sequence[str] = DEFAULT_ALLOWED_UPDATES,
    ) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": list(allowed_updates),
        }
        if offset is not None:
            payload["offset"] = offset
        # Leave headroom over the long-poll window for the HTTP read.
        result = await self.call("getUpdates", payload, timeout=float(timeout) + 10.0)
        return list(result or [])


__all__ = ["TelegramWorkspace", "WorkspaceAPIError", "THREAD_CLOSED_TEXT"]
