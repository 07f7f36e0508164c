"""Acquisition Loop - Selector + Quality Gate ate atingir N questoes aprovadas."""

import logging
import math
from collections.abc import Awaitable, Callable

from ..config import SelectionConfig
from ..errors import QuestionRepositoryError
from ..models.schemas import Question, QuestionSelectionOptions
from ..models.state import AcquisitionResult
from .dedup_engine import QuestionDeduplicationEngine
from .quality_gate import QualityGate
from .selector import QuestionSelector

logger = logging.getLogger(__name__)

# draw(quantidade, ids ja sorteados) -> candidatas
DrawFn = Callable[[int, frozenset[str]], Awaitable[list[Question]]]
# judge(candidatas) -> aprovadas
JudgeFn = Callable[[list[Question]], Awaitable[list[Question]]]


async def acquire_questions(
    target: int,
    draw: DrawFn,
    judge: JudgeFn,
    max_attempts: int = 3,
    overfetch_factor: float = 1.5,
) -> AcquisitionResult:
    """Sorteia e julga candidatas ate ter `target` aprovadas ou esgotar tentativas.

    Cada tentativa pede ceil(faltantes * overfetch_factor) candidatas que
    ainda nao foram sorteadas neste loop. Um sorteio vazio encerra o loop
    (pool esgotado). O resultado nunca passa de `target`.

    Args:
        target: Numero de questoes desejado (N)
        draw: Funcao de sorteio
        judge: Funcao que devolve as aprovadas de um lote
        max_attempts: Orcamento de tentativas
        overfetch_factor: Margem para rejeicoes

    Returns:
        AcquisitionResult com aprovadas, tentativas usadas e flag de esgotamento

    Example:
        >>> result = await acquire_questions(20, draw, judge)
        >>> result.count, result.attempts
        (20, 1)
    """
    result = AcquisitionResult(target=target)
    drawn: set[str] = set()

    while result.count < target and result.attempts < max_attempts:
        result.attempts += 1
        needed = target - result.count
        request = math.ceil(needed * overfetch_factor)
        logger.info(f"Tentativa {result.attempts}: buscando {request} questoes (faltam {needed})")

        candidates = [q for q in await draw(request, frozenset(drawn)) if q.id not in drawn]
        if not candidates:
            logger.warning("Sem novas questoes disponiveis")
            result.exhausted = True
            break

        drawn.update(q.id for q in candidates)
        approved = await judge(candidates)
        logger.info(f"{len(approved)}/{len(candidates)} aprovadas na checagem de qualidade")
        result.accepted.extend(approved)

    result.accepted = result.accepted[:target]

    if result.is_empty:
        logger.error(f"Nenhuma questao aprovada apos {result.attempts} tentativas")
    elif not result.is_complete:
        logger.warning(f"Falta de questoes: {result.count}/{target} apos {result.attempts} tentativas")
    else:
        logger.info(f"{result.count}/{target} questoes prontas em {result.attempts} tentativas")
    return result


class AcquisitionLoop:
    """Liga o loop puro ao seletor e ao quality gate reais.

    Mantem as dedupe keys ja sorteadas entre tentativas, para que duas
    questoes com a mesma chave nunca entrem na mesma sessao.

    Example:
        >>> loop = AcquisitionLoop(selector, gate, config.selection)
        >>> result = await loop.acquire(20, subject_ids=["hist"])
    """

    def __init__(self, selector: QuestionSelector, gate: QualityGate, config: SelectionConfig | None = None):
        self.selector = selector
        self.gate = gate
        self.config = config or SelectionConfig()

    async def acquire(
        self,
        target: int,
        subject_ids: list[str] | None = None,
        chapter_ids: list[str] | None = None,
    ) -> AcquisitionResult:
        dedup = QuestionDeduplicationEngine()
        draws = 0

        async def draw(count: int, exclude_ids: frozenset[str]) -> list[Question]:
            nonlocal draws
            draws += 1
            options = QuestionSelectionOptions(
                subject_ids=subject_ids or [],
                chapter_ids=chapter_ids or [],
                count=count,
            )
            try:
                batch = await self.selector.select(options, exclude_ids=exclude_ids, exclude_keys=dedup.seen_keys)
            except QuestionRepositoryError as e:
                # Falha apos o primeiro sorteio encerra o loop como pool esgotado
                if draws == 1:
                    raise
                logger.warning(f"Banco falhou no sorteio {draws}, seguindo com o que ja foi aprovado: {e}")
                return []
            dedup.remember(batch)
            return batch

        async def judge(batch: list[Question]) -> list[Question]:
            approved, _ = await self.gate.partition(batch)
            return approved

        return await acquire_questions(
            target,
            draw,
            judge,
            max_attempts=self.config.max_attempts,
            overfetch_factor=self.config.overfetch_factor,
        )
