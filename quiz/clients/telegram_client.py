"""Telegram Client - Gateway de mensagens sobre a Bot API (httpx)."""

import logging
from typing import Any

import httpx

from ..config import TelegramConfig
from ..errors import GatewayError
from ..models.schemas import PollMessage

logger = logging.getLogger(__name__)


class TelegramGateway:
    """Envia mensagens HTML e enquetes de quiz para o canal configurado.

    Example:
        >>> async with httpx.AsyncClient() as http:
        ...     gateway = TelegramGateway(config.telegram, http)
        ...     await gateway.send_message("<b>Ola</b>")
    """

    def __init__(self, config: TelegramConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    @property
    def channel_id(self) -> str:
        return self.config.channel_id

    def _url(self, method: str) -> str:
        return f"{self.config.api_url.rstrip('/')}/bot{self.config.bot_token}/{method}"

    async def _call(self, method: str, payload: dict[str, Any]) -> dict:
        """Chama um metodo da Bot API e retorna `result`.

        Raises:
            GatewayError: Falha de rede ou `ok: false` (com retry_after em 429)
        """
        if not self.config.configured:
            raise GatewayError("Telegram nao configurado (bot token/canal)")

        try:
            response = await self.http.post(self._url(method), json=payload)
        except httpx.HTTPError as e:
            raise GatewayError(f"Falha ao chamar {method}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise GatewayError(f"{method} retornou {response.status_code} sem JSON") from e

        if not body.get("ok"):
            retry_after = (body.get("parameters") or {}).get("retry_after")
            description = body.get("description", "erro desconhecido")
            raise GatewayError(
                f"{method} falhou ({body.get('error_code', response.status_code)}): {description}",
                retry_after=retry_after,
            )
        return body.get("result") or {}

    async def send_message(self, text: str) -> dict:
        """Mensagem de texto com parse_mode HTML."""
        return await self._call(
            "sendMessage",
            {
                "chat_id": self.channel_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
        )

    async def send_poll(self, poll: PollMessage) -> dict:
        """Enquete anonima do tipo quiz."""
        payload: dict[str, Any] = {
            "chat_id": self.channel_id,
            "question": poll.question,
            "options": [{"text": option} for option in poll.options],
            "type": poll.type,
            "correct_option_id": poll.correct_option_id,
            "is_anonymous": True,
        }
        if poll.explanation:
            payload["explanation"] = poll.explanation
            payload["explanation_parse_mode"] = "HTML"

        result = await self._call("sendPoll", payload)
        logger.debug(f"Enquete enviada: message_id={result.get('message_id')}")
        return result
