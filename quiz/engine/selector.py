"""Question Selector - Selecao de questoes com anti-repeticao e mix de dificuldade."""

import logging
import math
import random
from collections.abc import Iterable
from typing import Protocol

from ..config import SelectionConfig
from ..models.enums import QuizDifficulty
from ..models.schemas import Chapter, DifficultyRatio, Question, QuestionSelectionOptions, Subject
from ..storage.quiz_store import UsedQuestionStore
from .dedup_engine import QuestionDeduplicationEngine

logger = logging.getLogger(__name__)


class QuestionRepository(Protocol):
    """Contrato do banco de questoes (seletor, manager e planejador)."""

    async def find_questions(
        self,
        subject_ids: list[str] | None = None,
        chapter_ids: list[str] | None = None,
        verified: bool = True,
        limit: int = 500,
    ) -> list[Question]: ...

    async def list_subjects(self) -> list[Subject]: ...

    async def list_chapters(self, subject_id: str | None = None) -> list[Chapter]: ...


def round_half_up(value: float) -> int:
    """Arredondamento comercial (2.5 -> 3), sem o arredondamento bancario do round()."""
    return math.floor(value + 0.5)


def split_by_ratio(count: int, ratio: DifficultyRatio) -> dict[QuizDifficulty, int]:
    """Quantas questoes de cada dificuldade para um total `count`.

    EASY e MEDIUM sao arredondados; HARD fica com o restante.

    Example:
        >>> split_by_ratio(20, DifficultyRatio())
        {EASY: 6, MEDIUM: 10, HARD: 4}
    """
    easy = min(count, round_half_up(count * ratio.easy))
    medium = min(count - easy, round_half_up(count * ratio.medium))
    return {
        QuizDifficulty.EASY: easy,
        QuizDifficulty.MEDIUM: medium,
        QuizDifficulty.HARD: count - easy - medium,
    }


class QuestionSelector:
    """Seleciona ate N questoes do banco para uma sessao.

    Pipeline:
        1. Busca um superconjunto de questoes verificadas (min(N*5, 500))
        2. Remove usadas recentemente e ids excluidos pelo chamador
        3. Deduplica por dedupe_key
        4. Amostra pelo mix de dificuldade e embaralha

    Falta de questoes nao e erro: a lista volta menor que N.

    Example:
        >>> selector = QuestionSelector(repository, used_store, config.selection)
        >>> questions = await selector.select(QuestionSelectionOptions(count=20))
    """

    def __init__(
        self,
        repository: QuestionRepository,
        used_store: UsedQuestionStore,
        config: SelectionConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.repository = repository
        self.used_store = used_store
        self.config = config or SelectionConfig()
        self.rng = rng or random.Random()

    async def select(
        self,
        options: QuestionSelectionOptions,
        exclude_ids: Iterable[str] = (),
        exclude_keys: Iterable[str] = (),
    ) -> list[Question]:
        """Seleciona questoes para `options.count`.

        Args:
            options: Filtros, quantidade e mix de dificuldade
            exclude_ids: Ids a ignorar alem dos usados recentemente
            exclude_keys: Dedupe keys ja consumidas pelo chamador

        Returns:
            Ate `options.count` questoes em ordem aleatoria

        Raises:
            QuestionRepositoryError: Falha no banco de questoes
        """
        count = options.count
        exclude_ids = set(exclude_ids)
        # Ids excluidos ocupam espaco na busca; amplia o limite para compensar
        fetch_count = min(count * self.config.fetch_multiplier + len(exclude_ids), self.config.fetch_cap)

        questions = await self.repository.find_questions(
            subject_ids=options.subject_ids,
            chapter_ids=options.chapter_ids,
            verified=True,
            limit=fetch_count,
        )
        logger.info(f"{len(questions)} questoes buscadas (limite {fetch_count})")

        days = options.exclude_recent_days
        if days is None:
            days = self.config.avoid_recent_days
        recently_used = await self.used_store.recently_used_ids(days) if days > 0 else set()
        if recently_used:
            logger.info(f"Excluindo {len(recently_used)} questoes usadas nos ultimos {days} dias")

        dedup = QuestionDeduplicationEngine(seen_keys=exclude_keys)
        available = dedup.dedupe_by_key(dedup.filter_excluded(questions, recently_used | exclude_ids))
        logger.info(f"{len(available)} questoes disponiveis apos filtros")

        if len(available) < count:
            logger.warning(f"Apenas {len(available)} questoes disponiveis, pedido de {count}")
            self.rng.shuffle(available)
            return available

        ratio = options.difficulty_ratio or self.config.difficulty_ratio
        return self.select_by_difficulty_ratio(available, count, ratio)

    def select_by_difficulty_ratio(
        self, questions: list[Question], count: int, ratio: DifficultyRatio
    ) -> list[Question]:
        """Amostra `count` questoes seguindo o mix de dificuldade.

        Cada faixa e sorteada por permutacao uniforme; a falta em uma faixa e
        completada com o restante do pool (questoes sem dificuldade e sobras de
        todas as faixas, embaralhadas). A saida final e embaralhada.
        """
        buckets: dict[QuizDifficulty | None, list[Question]] = {
            QuizDifficulty.EASY: [],
            QuizDifficulty.MEDIUM: [],
            QuizDifficulty.HARD: [],
            None: [],
        }
        for question in questions:
            buckets[question.difficulty_level].append(question)

        selected: list[Question] = []
        leftovers: list[Question] = list(buckets[None])

        for difficulty, wanted in split_by_ratio(count, ratio).items():
            bucket = self.rng.sample(buckets[difficulty], len(buckets[difficulty]))
            selected.extend(bucket[:wanted])
            leftovers.extend(bucket[wanted:])

        shortfall = count - len(selected)
        if shortfall > 0:
            self.rng.shuffle(leftovers)
            selected.extend(leftovers[:shortfall])
            logger.debug(f"Completadas {min(shortfall, len(leftovers))} questoes fora do mix")

        self.rng.shuffle(selected)
        return selected[:count]
