"""Quality Gate - Filtra candidatas pelo oraculo de qualidade."""

import logging
from typing import Protocol

from ..models.schemas import QualityCheckInput, QualityVerdict, Question

logger = logging.getLogger(__name__)


class QualityOracle(Protocol):
    """Juiz externo de qualidade (LLM)."""

    async def review(self, batch: list[QualityCheckInput]) -> list[QualityVerdict]: ...


class QualityGate:
    """Envia lotes ao oraculo e separa aprovadas de rejeitadas.

    A moderacao e consultiva: com `fail_open=True` (padrao) questoes sem
    veredito e lotes cujo oraculo falhou sao aprovados.

    Example:
        >>> gate = QualityGate(LLMQualityOracle(llm))
        >>> approved, rejected = await gate.partition(questions)
    """

    def __init__(self, oracle: QualityOracle, fail_open: bool = True):
        self.oracle = oracle
        self.fail_open = fail_open

    def _default_verdict(self, question_id: str, reason: str) -> QualityVerdict:
        if self.fail_open:
            return QualityVerdict(id=question_id, approved=True)
        return QualityVerdict(id=question_id, approved=False, reason=reason)

    async def judge(self, questions: list[Question]) -> list[QualityVerdict]:
        """Um veredito por questao, na ordem de entrada."""
        if not questions:
            return []

        batch = [q.to_quality_input() for q in questions]
        try:
            verdicts = await self.oracle.review(batch)
        except Exception as e:
            policy = "aprovando" if self.fail_open else "rejeitando"
            logger.warning(f"Oraculo de qualidade falhou, {policy} {len(batch)} questoes: {e}")
            return [self._default_verdict(item.id, "oraculo indisponivel") for item in batch]

        by_id: dict[str, QualityVerdict] = {}
        for verdict in verdicts:
            # Primeira resposta por id vale; ids fora do lote sao ignorados
            by_id.setdefault(verdict.id, verdict)

        results = []
        missing = 0
        for item in batch:
            verdict = by_id.get(item.id)
            if verdict is None:
                missing += 1
                verdict = self._default_verdict(item.id, "sem veredito")
            results.append(verdict)

        if missing:
            logger.warning(f"{missing} questoes sem veredito do oraculo")
        for verdict in results:
            if not verdict.approved:
                logger.info(f"Rejeitada {verdict.id}: {verdict.reason}")

        approved = sum(1 for v in results if v.approved)
        logger.info(f"Checagem de qualidade: {approved} aprovadas, {len(results) - approved} rejeitadas")
        return results

    async def partition(self, questions: list[Question]) -> tuple[list[Question], list[Question]]:
        """Separa (aprovadas, rejeitadas), preservando a ordem."""
        verdicts = await self.judge(questions)
        approved, rejected = [], []
        for question, verdict in zip(questions, verdicts):
            (approved if verdict.approved else rejected).append(question)
        return approved, rejected
