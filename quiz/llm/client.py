"""LLM Client - Cliente de chat completions (Mistral) sobre httpx."""

import json
import logging
import re
from typing import Any

import httpx

from ..config import LLMConfig
from ..errors import LLMClientError

logger = logging.getLogger(__name__)

# Primeiro array ou objeto JSON em uma resposta com texto ao redor
_JSON_PATTERN = re.compile(r"\[[\s\S]*\]|\{[\s\S]*\}")
_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def extract_json(content: str) -> Any:
    """Extrai JSON de uma resposta do LLM.

    Aceita JSON puro, JSON dentro de bloco markdown ou JSON cercado por texto.

    Raises:
        LLMClientError: Se nenhum JSON valido for encontrado
    """
    if not content or not content.strip():
        raise LLMClientError("Resposta vazia do LLM")

    text = _FENCE_PATTERN.sub("", content.strip())
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = _JSON_PATTERN.search(text)
    if not match:
        raise LLMClientError(f"Resposta sem JSON: {content[:120]!r}")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMClientError(f"JSON invalido na resposta: {e}") from e


class MistralChatClient:
    """Cliente minimo para o endpoint /v1/chat/completions.

    Pede sempre `response_format=json_object` e devolve o conteudo da
    primeira escolha.

    Example:
        >>> async with httpx.AsyncClient() as http:
        ...     llm = MistralChatClient(config.llm, http)
        ...     data = await llm.complete_json(system_prompt, user_prompt)
    """

    def __init__(self, config: LLMConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Envia o par system/user e retorna o texto da resposta.

        Raises:
            LLMClientError: Sem API key, erro HTTP ou resposta sem conteudo
        """
        if not self.configured:
            raise LLMClientError("MISTRAL_API_KEY nao configurada")

        payload = {
            "model": model or self.config.quality_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens or self.config.max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            response = await self.http.post(
                self.config.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
            )
        except httpx.HTTPError as e:
            raise LLMClientError(f"Falha na chamada ao LLM: {e}") from e

        if response.status_code != 200:
            raise LLMClientError(
                f"LLM respondeu {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMClientError(f"Resposta do LLM em formato inesperado: {e}") from e

        if not content:
            raise LLMClientError("LLM retornou conteudo vazio")
        return content

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str | None = None,
    ) -> Any:
        """Como `complete`, mas ja extrai o JSON da resposta."""
        content = await self.complete(system_prompt, user_prompt, model=model)
        logger.debug(f"Resposta do LLM: {len(content)} chars")
        return extract_json(content)
