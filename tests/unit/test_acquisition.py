# =============================================================================
# TESTES - Acquisition Loop
# =============================================================================
# Orcamento de tentativas, overfetch, esgotamento e integracao seletor + gate
# =============================================================================

from unittest.mock import AsyncMock

import pytest

from quiz.errors import QualityOracleError, QuestionRepositoryError
from quiz.models.schemas import QualityVerdict


class _Pool:
    """Sorteio deterministico: as primeiras questoes ainda nao sorteadas."""

    def __init__(self, questions):
        self.questions = questions
        self.requests = []

    async def draw(self, count, drawn):
        self.requests.append(count)
        return [q for q in self.questions if q.id not in drawn][:count]


def _rejecting(ids):
    async def judge(batch):
        return [q for q in batch if q.id not in ids]

    return judge


class TestAcquireQuestions:
    """Testes para o loop puro."""

    @pytest.mark.asyncio
    async def test_single_attempt_when_enough_approved(self, question_pool):
        """Verifica parada apos uma tentativa (30 sorteadas, 25 aprovadas)."""
        from quiz.engine import acquire_questions

        pool = _Pool(question_pool)
        rejected = {q.id for q in question_pool[:5]}

        result = await acquire_questions(20, pool.draw, _rejecting(rejected))

        assert pool.requests == [30]
        assert result.attempts == 1
        assert result.count == 20
        assert not {q.id for q in result.accepted} & rejected

    @pytest.mark.asyncio
    async def test_second_attempt_covers_rejections(self, question_pool):
        """Verifica segunda tentativa com ceil(faltantes * 1.5)."""
        from quiz.engine import acquire_questions

        pool = _Pool(question_pool)
        rejected = {q.id for q in question_pool[:15]}

        result = await acquire_questions(20, pool.draw, _rejecting(rejected))

        assert pool.requests == [30, 8]
        assert result.attempts == 2
        assert result.count == 20
        assert result.is_complete

    @pytest.mark.asyncio
    async def test_stops_at_max_attempts(self, question_pool):
        """Verifica no maximo 3 tentativas."""
        from quiz.engine import acquire_questions

        pool = _Pool(question_pool)

        async def reject_all(batch):
            return []

        result = await acquire_questions(5, pool.draw, reject_all, max_attempts=3)

        assert result.attempts == 3
        assert result.is_empty
        assert not result.exhausted

    @pytest.mark.asyncio
    async def test_exhausted_pool(self, question_pool):
        """Verifica encerramento quando nao ha questoes novas."""
        from quiz.engine import acquire_questions

        pool = _Pool(question_pool[:10])

        result = await acquire_questions(20, pool.draw, _rejecting(set()))

        assert result.count == 10
        assert result.exhausted
        assert result.attempts == 2
        assert result.shortfall == 10

    @pytest.mark.asyncio
    async def test_redrawn_ids_are_ignored(self, question_pool):
        """Verifica que ids ja sorteados nao sao julgados de novo."""
        from quiz.engine import acquire_questions

        judged = []

        async def sticky_draw(count, drawn):
            return question_pool[:3]

        async def judge(batch):
            judged.extend(q.id for q in batch)
            return batch[:1]

        result = await acquire_questions(5, sticky_draw, judge)

        assert judged == [q.id for q in question_pool[:3]]
        assert result.exhausted
        assert result.count == 1

    @pytest.mark.asyncio
    async def test_never_exceeds_target(self, question_pool):
        """Verifica truncamento em N."""
        from quiz.engine import acquire_questions

        pool = _Pool(question_pool)

        result = await acquire_questions(4, pool.draw, _rejecting(set()), overfetch_factor=3.0)

        assert pool.requests == [12]
        assert result.count == 4


class TestAcquisitionLoop:
    """Testes para o loop ligado ao seletor e ao gate reais."""

    def _loop(self, repository, used_store, selection_config, rng, oracle):
        from quiz.engine import AcquisitionLoop, QualityGate, QuestionSelector

        selector = QuestionSelector(repository, used_store, selection_config, rng=rng)
        gate = QualityGate(oracle, fail_open=selection_config.fail_open_on_oracle_error)
        return AcquisitionLoop(selector, gate, selection_config)

    @pytest.mark.asyncio
    async def test_oracle_always_failing_fails_open(self, repository, used_store, selection_config, rng):
        """Verifica min(pool, N) questoes quando o oraculo sempre falha."""
        oracle = AsyncMock()
        oracle.review = AsyncMock(side_effect=QualityOracleError("indisponivel"))
        loop = self._loop(repository, used_store, selection_config, rng, oracle)

        result = await loop.acquire(20)

        assert result.count == 20
        assert result.attempts == 1

    @pytest.mark.asyncio
    async def test_passes_subject_filters(self, repository, used_store, selection_config, rng, approving_oracle):
        """Verifica que materias e capitulos chegam ao banco."""
        loop = self._loop(repository, used_store, selection_config, rng, approving_oracle)

        await loop.acquire(5, subject_ids=["hist"], chapter_ids=["hist-1"])

        call = repository.find_calls[0]
        assert call["subject_ids"] == ["hist"]
        assert call["chapter_ids"] == ["hist-1"]

    @pytest.mark.asyncio
    async def test_dedupe_keys_held_across_attempts(self, make_question, make_repository, used_store, selection_config, rng):
        """Verifica que a chave de uma questao rejeitada nao volta pela gemea."""
        from quiz.engine import has_duplicate_keys

        originals = [make_question(f"a{i}", dedupe_key=f"k{i}") for i in range(20)]
        twins = [make_question(f"b{i}", dedupe_key=f"k{i}") for i in range(20)]
        oracle = AsyncMock()
        oracle.review = AsyncMock(
            side_effect=lambda batch: [
                QualityVerdict(id=item.id, approved=False, reason="ruim") for item in batch if item.id in {f"a{i}" for i in range(10)}
            ]
        )
        loop = self._loop(make_repository(originals + twins), used_store, selection_config, rng, oracle)

        result = await loop.acquire(20)

        ids = {q.id for q in result.accepted}
        assert result.count == 10
        assert result.exhausted
        assert not ids & {f"b{i}" for i in range(20)}
        assert not has_duplicate_keys(result.accepted)

    @pytest.mark.asyncio
    async def test_empty_bank(self, make_repository, used_store, selection_config, rng, approving_oracle):
        """Verifica resultado vazio com banco vazio."""
        loop = self._loop(make_repository([]), used_store, selection_config, rng, approving_oracle)

        result = await loop.acquire(20)

        assert result.is_empty
        assert result.exhausted
        approving_oracle.review.assert_not_called()

    @pytest.mark.asyncio
    async def test_repository_error_after_first_draw_keeps_approved(
        self, make_repository, question_pool, used_store, selection_config, rng
    ):
        """Verifica que falha do banco na segunda tentativa vira falta de questoes."""
        oracle = AsyncMock()
        oracle.review = AsyncMock(
            side_effect=lambda batch: [QualityVerdict(id=item.id, approved=False, reason="ruim") for item in batch[1::2]]
        )
        repository = make_repository(question_pool, fail_after=1)
        loop = self._loop(repository, used_store, selection_config, rng, oracle)

        result = await loop.acquire(20)

        assert len(repository.find_calls) == 2
        assert result.attempts == 2
        assert result.count == 15
        assert result.exhausted

    @pytest.mark.asyncio
    async def test_repository_error_on_first_draw_propagates(
        self, make_repository, question_pool, used_store, selection_config, rng, approving_oracle
    ):
        """Verifica que falha do banco no primeiro sorteio continua sendo erro."""
        loop = self._loop(make_repository(question_pool, fail_after=0), used_store, selection_config, rng, approving_oracle)

        with pytest.raises(QuestionRepositoryError):
            await loop.acquire(20)
