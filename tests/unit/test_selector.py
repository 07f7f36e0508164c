# =============================================================================
# TESTES - Question Selector
# =============================================================================
# Mix de dificuldade, anti-repeticao, deduplicacao e falta de questoes
# =============================================================================

from collections import Counter

import pytest

from quiz.models.enums import QuizDifficulty
from quiz.models.schemas import DifficultyRatio, QuestionSelectionOptions


def _difficulties(questions):
    return Counter(q.difficulty_level for q in questions)


class TestSplitByRatio:
    """Testes para a divisao de N pelas fracoes."""

    def test_default_split_for_20(self):
        """Verifica 6/10/4 para N=20."""
        from quiz.engine.selector import split_by_ratio

        split = split_by_ratio(20, DifficultyRatio())

        assert split == {QuizDifficulty.EASY: 6, QuizDifficulty.MEDIUM: 10, QuizDifficulty.HARD: 4}

    def test_rounds_half_up(self):
        """Verifica arredondamento comercial (N=5 -> 2/3/0)."""
        from quiz.engine.selector import split_by_ratio

        split = split_by_ratio(5, DifficultyRatio())

        # 1.5 -> 2, 2.5 -> 3, HARD fica com o resto
        assert split[QuizDifficulty.EASY] == 2
        assert split[QuizDifficulty.MEDIUM] == 3
        assert split[QuizDifficulty.HARD] == 0

    @pytest.mark.parametrize("count", [1, 3, 7, 13, 20, 37, 100])
    def test_split_sums_to_count(self, count):
        """Verifica que a soma das faixas e sempre N."""
        from quiz.engine.selector import split_by_ratio

        assert sum(split_by_ratio(count, DifficultyRatio()).values()) == count


class TestSelect:
    """Testes para a selecao completa."""

    def _selector(self, repository, used_store, selection_config, rng):
        from quiz.engine import QuestionSelector

        return QuestionSelector(repository, used_store, selection_config, rng=rng)

    @pytest.mark.asyncio
    async def test_difficulty_mix(self, repository, used_store, selection_config, rng):
        """Verifica 6 EASY, 10 MEDIUM e 4 HARD com pool suficiente."""
        selector = self._selector(repository, used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=20))

        assert len(selected) == 20
        assert len({q.id for q in selected}) == 20
        counts = _difficulties(selected)
        assert counts[QuizDifficulty.EASY] == 6
        assert counts[QuizDifficulty.MEDIUM] == 10
        assert counts[QuizDifficulty.HARD] == 4

    @pytest.mark.asyncio
    async def test_fetch_limit(self, repository, used_store, selection_config, rng):
        """Verifica busca de min(N*5, 500) questoes verificadas."""
        selector = self._selector(repository, used_store, selection_config, rng)

        await selector.select(QuestionSelectionOptions(count=20, subject_ids=["hist"]))
        await selector.select(QuestionSelectionOptions(count=100))

        first, second = repository.find_calls
        assert first == {"subject_ids": ["hist"], "chapter_ids": [], "verified": True, "limit": 100}
        assert second["limit"] == 500

    @pytest.mark.asyncio
    async def test_excluded_ids_widen_fetch(self, repository, used_store, selection_config, rng):
        """Verifica que ids excluidos ampliam o limite e nao sao selecionados."""
        selector = self._selector(repository, used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=5), exclude_ids={"e0", "e1", "m0"})

        assert repository.find_calls[0]["limit"] == 28
        assert not {q.id for q in selected} & {"e0", "e1", "m0"}

    @pytest.mark.asyncio
    async def test_excludes_recently_used(self, repository, used_store, selection_config, rng):
        """Verifica que questoes usadas na janela nao voltam."""
        await used_store.mark_used([f"e{i}" for i in range(15)], "quiz_prev")
        selector = self._selector(repository, used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=20))

        assert len(selected) == 20
        assert _difficulties(selected)[QuizDifficulty.EASY] == 0

    @pytest.mark.asyncio
    async def test_zero_day_window_disables_exclusion(self, repository, used_store, selection_config, rng):
        """Verifica exclude_recent_days=0."""
        await used_store.mark_used([q.id for q in repository.questions], "quiz_prev")
        selector = self._selector(repository, used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=20, exclude_recent_days=0))

        assert len(selected) == 20

    @pytest.mark.asyncio
    async def test_dedupes_by_key(self, make_repository, make_question, used_store, selection_config, rng):
        """Verifica que chaves repetidas nunca entram juntas."""
        pool = [make_question(f"q{i}", dedupe_key=f"k{i % 4}") for i in range(12)]
        selector = self._selector(make_repository(pool), used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=10))

        assert len(selected) == 4
        assert len({q.dedupe_key for q in selected}) == 4

    @pytest.mark.asyncio
    async def test_exclude_keys(self, make_repository, make_question, used_store, selection_config, rng):
        """Verifica exclusao de chaves ja consumidas pelo chamador."""
        pool = [make_question("a", dedupe_key="k1"), make_question("b", dedupe_key="k2")]
        selector = self._selector(make_repository(pool), used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=2), exclude_keys={"k1"})

        assert [q.id for q in selected] == ["b"]

    @pytest.mark.asyncio
    async def test_shortage_returns_all_available(self, make_repository, question_pool, used_store, selection_config, rng):
        """Verifica que falta de questoes nao e erro (10 de 20)."""
        selector = self._selector(make_repository(question_pool[:10]), used_store, selection_config, rng)

        selected = await selector.select(QuestionSelectionOptions(count=20))

        assert len(selected) == 10

    @pytest.mark.asyncio
    async def test_empty_bank(self, make_repository, used_store, selection_config, rng):
        """Verifica lista vazia com banco vazio."""
        selector = self._selector(make_repository([]), used_store, selection_config, rng)

        assert await selector.select(QuestionSelectionOptions(count=20)) == []

    @pytest.mark.asyncio
    async def test_repository_error_propagates(self, used_store, selection_config, rng):
        """Verifica que erro do banco sobe para o chamador."""
        from unittest.mock import AsyncMock

        from quiz.errors import QuestionRepositoryError

        repository = AsyncMock()
        repository.find_questions = AsyncMock(side_effect=QuestionRepositoryError("timeout"))
        selector = self._selector(repository, used_store, selection_config, rng)

        with pytest.raises(QuestionRepositoryError):
            await selector.select(QuestionSelectionOptions(count=5))


class TestSelectByDifficultyRatio:
    """Testes para o preenchimento de faixas incompletas."""

    def test_fills_from_leftovers(self, make_question, used_store, rng):
        """Verifica que faixas vazias sao completadas com o resto do pool."""
        from quiz.engine import QuestionSelector

        pool = [make_question(f"m{i}", "MEDIUM") for i in range(15)]
        pool += [make_question(f"n{i}", None) for i in range(5)]
        selector = QuestionSelector(None, used_store, rng=rng)

        selected = selector.select_by_difficulty_ratio(pool, 20, DifficultyRatio())

        assert len(selected) == 20
        assert len({q.id for q in selected}) == 20

    def test_never_exceeds_count(self, question_pool, used_store, rng):
        """Verifica que a saida tem no maximo N questoes."""
        from quiz.engine import QuestionSelector

        selector = QuestionSelector(None, used_store, rng=rng)

        selected = selector.select_by_difficulty_ratio(question_pool, 7, DifficultyRatio(easy=1.0, medium=0, hard=0))

        assert len(selected) == 7
        assert _difficulties(selected)[QuizDifficulty.EASY] == 7

    def test_seeded_rng_is_deterministic(self, question_pool, used_store):
        """Verifica reprodutibilidade com a mesma semente."""
        import random

        from quiz.engine import QuestionSelector

        first = QuestionSelector(None, used_store, rng=random.Random(7))
        second = QuestionSelector(None, used_store, rng=random.Random(7))

        a = first.select_by_difficulty_ratio(question_pool, 20, DifficultyRatio())
        b = second.select_by_difficulty_ratio(question_pool, 20, DifficultyRatio())

        assert [q.id for q in a] == [q.id for q in b]
