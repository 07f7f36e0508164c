"""Astra Client - Banco de questoes sobre a Data API do Astra DB (httpx)."""

import logging
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import AstraConfig
from ..errors import QuestionRepositoryError
from ..models.schemas import Chapter, Question, Subject

logger = logging.getLogger(__name__)

# Limite de contagem aceito pelo countDocuments da Data API
COUNT_UPPER_BOUND = 1000


class AstraQuestionRepository:
    """Repositorio somente leitura de questoes, materias e capitulos.

    Cada colecao e acessada por POST em
    `{endpoint}/api/json/v1/{namespace}/{collection}` com o comando no corpo
    (`find`, `countDocuments`). Paginacao via `nextPageState`.

    Example:
        >>> async with httpx.AsyncClient() as http:
        ...     repo = AstraQuestionRepository(config.astra, http)
        ...     questions = await repo.find_questions(subject_ids=["hist"], limit=100)
    """

    def __init__(self, config: AstraConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    # =========================================================================
    # TRANSPORTE
    # =========================================================================

    def _url(self, collection: str | None = None) -> str:
        base = f"{self.config.endpoint.rstrip('/')}/api/json/v1/{self.config.namespace}"
        return f"{base}/{collection}" if collection else base

    async def _command(self, command: dict[str, Any], collection: str | None = None) -> dict:
        """Executa um comando da Data API e retorna o corpo da resposta.

        Raises:
            QuestionRepositoryError: Falha de rede, HTTP != 200 ou campo "errors"
        """
        if not self.config.configured:
            raise QuestionRepositoryError("Astra DB nao configurado (endpoint/token)")

        try:
            response = await self.http.post(
                self._url(collection),
                json=command,
                headers={"Token": self.config.token},
            )
        except httpx.HTTPError as e:
            raise QuestionRepositoryError(f"Falha ao acessar Astra DB: {e}") from e

        if response.status_code != 200:
            raise QuestionRepositoryError(
                f"Astra DB respondeu {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise QuestionRepositoryError("Resposta do Astra DB nao e JSON") from e

        if body.get("errors"):
            message = body["errors"][0].get("message", "erro desconhecido")
            raise QuestionRepositoryError(f"Astra DB: {message}")
        return body

    async def _find(
        self,
        collection: str,
        filter: dict[str, Any],
        limit: int | None = None,
    ) -> list[dict]:
        """`find` paginado ate `limit` documentos (ou ate acabar)."""
        documents: list[dict] = []
        page_state = None

        while True:
            options: dict[str, Any] = {}
            if limit is not None:
                options["limit"] = limit
            if page_state:
                options["pageState"] = page_state

            body = await self._command({"find": {"filter": filter, "options": options}}, collection)
            data = body.get("data") or {}
            documents.extend(data.get("documents") or [])

            page_state = data.get("nextPageState")
            if not page_state or (limit is not None and len(documents) >= limit):
                break

        return documents[:limit] if limit is not None else documents

    @staticmethod
    def _parse(model, documents: Iterable[dict]) -> list:
        parsed = []
        for doc in documents:
            try:
                parsed.append(model.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"{model.__name__} invalido ignorado ({doc.get('_id')}): {e.errors()[:1]}")
        return parsed

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    async def find_questions(
        self,
        subject_ids: list[str] | None = None,
        chapter_ids: list[str] | None = None,
        verified: bool = True,
        limit: int = 500,
    ) -> list[Question]:
        """Busca questoes por materia/capitulo e flag de verificacao.

        Nenhuma ordem e garantida.
        """
        filter: dict[str, Any] = {"verified": verified}
        if subject_ids:
            filter["subjectId"] = {"$in": list(subject_ids)}
        if chapter_ids:
            filter["chapterId"] = {"$in": list(chapter_ids)}

        documents = await self._find(self.config.questions_collection, filter, limit=limit)
        logger.info(f"{len(documents)} questoes buscadas no Astra DB")
        return self._parse(Question, documents)

    async def list_subjects(self) -> list[Subject]:
        """Materias ativas."""
        documents = await self._find(self.config.subjects_collection, {"isActive": True})
        return self._parse(Subject, documents)

    async def list_chapters(self, subject_id: str | None = None) -> list[Chapter]:
        """Capitulos ativos, opcionalmente de uma materia."""
        filter: dict[str, Any] = {"isActive": True}
        if subject_id:
            filter["subjectId"] = subject_id
        documents = await self._find(self.config.chapters_collection, filter)
        return self._parse(Chapter, documents)

    # =========================================================================
    # DIAGNOSTICO
    # =========================================================================

    async def ping(self) -> bool:
        """Testa a conexao listando as colecoes do namespace."""
        try:
            body = await self._command({"findCollections": {}})
        except QuestionRepositoryError as e:
            logger.error(f"Conexao com Astra DB falhou: {e}")
            return False

        names = (body.get("status") or {}).get("collections") or []
        logger.info(f"Astra DB conectado: {len(names)} colecoes ({', '.join(map(str, names))})")
        return True

    async def _count(self, collection: str) -> int:
        body = await self._command({"countDocuments": {}}, collection)
        status = body.get("status") or {}
        if status.get("moreData"):
            return COUNT_UPPER_BOUND
        return int(status.get("count", 0))

    async def collection_stats(self) -> dict[str, int]:
        """Contagem de questoes, materias e capitulos (saturada em 1000)."""
        return {
            "questions": await self._count(self.config.questions_collection),
            "subjects": await self._count(self.config.subjects_collection),
            "chapters": await self._count(self.config.chapters_collection),
        }
