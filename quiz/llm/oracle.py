"""LLM Oracles - Checagem de qualidade e planejamento de agenda via LLM."""

import datetime as dt
import logging
from typing import Any

from pydantic import ValidationError

from ..errors import LLMClientError, QualityOracleError
from ..models.schemas import PlannedQuiz, QualityCheckInput, QualityVerdict, SubjectSelection, SubjectSummary
from ..prompts.templates import (
    QUALITY_CHECK_SYSTEM_PROMPT,
    SCHEDULE_GENERATION_SYSTEM_PROMPT,
    SUBJECT_SELECTION_SYSTEM_PROMPT,
    build_quality_check_prompt,
    build_schedule_generation_prompt,
    build_subject_selection_prompt,
)
from .client import MistralChatClient

logger = logging.getLogger(__name__)


def _as_list(data: Any) -> list:
    """Normaliza a resposta para lista.

    Com `response_format=json_object` o modelo as vezes embrulha o array
    em um objeto (ex: {"results": [...]}); usa a primeira lista encontrada.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for value in data.values():
            if isinstance(value, list):
                return value
    raise LLMClientError(f"Esperava lista JSON, recebido {type(data).__name__}")


class LLMQualityOracle:
    """Oraculo de qualidade: o LLM revisa um lote e marca questoes a remover."""

    def __init__(self, llm: MistralChatClient, model: str | None = None):
        self.llm = llm
        self.model = model or llm.config.quality_model

    async def review(self, batch: list[QualityCheckInput]) -> list[QualityVerdict]:
        """Revisa um lote de questoes.

        Returns:
            Vereditos retornados pelo LLM (podem faltar ids)

        Raises:
            QualityOracleError: Chamada falhou ou resposta malformada
        """
        if not batch:
            return []

        logger.info(f"Checando qualidade de {len(batch)} questoes")
        try:
            data = await self.llm.complete_json(
                QUALITY_CHECK_SYSTEM_PROMPT,
                build_quality_check_prompt(batch),
                model=self.model,
            )
            items = _as_list(data)
        except LLMClientError as e:
            raise QualityOracleError(str(e)) from e

        verdicts = []
        for item in items:
            try:
                verdicts.append(QualityVerdict.model_validate(item))
            except ValidationError:
                logger.warning(f"Veredito malformado ignorado: {item!r}")
        return verdicts


class LLMSchedulePlanner:
    """Planejador: agenda semanal e selecao de materias via LLM."""

    def __init__(self, llm: MistralChatClient, model: str | None = None):
        self.llm = llm
        self.model = model or llm.config.schedule_model

    async def plan_week(
        self, subjects: list[SubjectSummary], start: dt.date, days_ahead: int = 7
    ) -> list[PlannedQuiz]:
        """Pede ao LLM a agenda dos proximos `days_ahead` dias.

        Entradas invalidas sao descartadas com warning.

        Raises:
            LLMClientError: Chamada falhou ou resposta sem lista
        """
        if not subjects:
            logger.warning("Sem materias para gerar agenda")
            return []

        data = await self.llm.complete_json(
            SCHEDULE_GENERATION_SYSTEM_PROMPT,
            build_schedule_generation_prompt(subjects, start, days_ahead),
            model=self.model,
        )

        planned = []
        for item in _as_list(data):
            try:
                planned.append(PlannedQuiz.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Quiz planejado invalido ignorado: {e.errors()[:1]}")

        logger.info(f"LLM planejou {len(planned)} quizzes")
        return planned

    async def select_subjects(
        self, subjects: list[SubjectSummary], question_count: int
    ) -> SubjectSelection:
        """Pede ao LLM materias/capitulos e titulo para um quiz avulso.

        Raises:
            LLMClientError: Chamada falhou ou resposta invalida
        """
        if not subjects:
            raise LLMClientError("Sem materias disponiveis para selecao")

        data = await self.llm.complete_json(
            SUBJECT_SELECTION_SYSTEM_PROMPT,
            build_subject_selection_prompt(subjects, question_count),
            model=self.model,
        )
        if not isinstance(data, dict):
            raise LLMClientError("Selecao de materias deveria ser um objeto JSON")

        try:
            selection = SubjectSelection.model_validate(data)
        except ValidationError as e:
            raise LLMClientError(f"Selecao de materias invalida: {e.errors()[:1]}") from e

        logger.info(f"LLM selecionou: {selection.title!r} ({selection.reasoning})")
        return selection
