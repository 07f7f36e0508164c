# =============================================================================
# TESTES - Quality Gate
# =============================================================================
# Vereditos do oraculo, vereditos ausentes e politica fail-open/fail-closed
# =============================================================================

from unittest.mock import AsyncMock

import pytest

from quiz.errors import QualityOracleError
from quiz.models.schemas import QualityVerdict


def _oracle(verdicts=None, error=None):
    oracle = AsyncMock()
    if error is not None:
        oracle.review = AsyncMock(side_effect=error)
    else:
        oracle.review = AsyncMock(return_value=verdicts or [])
    return oracle


class TestQualityGateJudge:
    """Testes para o julgamento de lotes."""

    @pytest.mark.asyncio
    async def test_one_verdict_per_question_in_order(self, make_question):
        """Verifica um veredito por entrada, na ordem de entrada."""
        from quiz.engine import QualityGate

        questions = [make_question("a"), make_question("b"), make_question("c")]
        oracle = _oracle(
            [
                QualityVerdict(id="c", approved=True),
                QualityVerdict(id="a", approved=False, reason="duplicada"),
                QualityVerdict(id="b", approved=True),
            ]
        )

        verdicts = await QualityGate(oracle).judge(questions)

        assert [v.id for v in verdicts] == ["a", "b", "c"]
        assert [v.approved for v in verdicts] == [False, True, True]
        assert verdicts[0].reason == "duplicada"

    @pytest.mark.asyncio
    async def test_sends_english_projection(self, make_question):
        """Verifica que o oraculo recebe apenas id, texto e alternativas em ingles."""
        from quiz.engine import QualityGate

        oracle = _oracle()

        await QualityGate(oracle).judge([make_question("a")])

        batch = oracle.review.call_args[0][0]
        assert batch[0].id == "a"
        assert batch[0].text == "Question text a"

    @pytest.mark.asyncio
    async def test_missing_verdicts_approved(self, make_question):
        """Verifica que questoes sem veredito sao aprovadas por padrao."""
        from quiz.engine import QualityGate

        oracle = _oracle([QualityVerdict(id="a", approved=False, reason="vaga")])

        verdicts = await QualityGate(oracle).judge([make_question("a"), make_question("b")])

        assert [v.approved for v in verdicts] == [False, True]

    @pytest.mark.asyncio
    async def test_unknown_ids_and_duplicates_ignored(self, make_question):
        """Verifica que ids fora do lote sao ignorados e o primeiro veredito vale."""
        from quiz.engine import QualityGate

        oracle = _oracle(
            [
                QualityVerdict(id="zzz", approved=False),
                QualityVerdict(id="a", approved=True),
                QualityVerdict(id="a", approved=False),
            ]
        )

        verdicts = await QualityGate(oracle).judge([make_question("a")])

        assert len(verdicts) == 1
        assert verdicts[0].approved

    @pytest.mark.asyncio
    async def test_oracle_error_fails_open(self, make_question, capture_logs):
        """Verifica que falha do oraculo aprova o lote inteiro."""
        from quiz.engine import QualityGate

        oracle = _oracle(error=QualityOracleError("timeout"))

        verdicts = await QualityGate(oracle).judge([make_question("a"), make_question("b")])

        assert all(v.approved for v in verdicts)
        assert "Oraculo de qualidade falhou" in capture_logs.text

    @pytest.mark.asyncio
    async def test_unexpected_error_also_fails_open(self, make_question):
        """Verifica que qualquer excecao do oraculo e tratada."""
        from quiz.engine import QualityGate

        oracle = _oracle(error=RuntimeError("boom"))

        verdicts = await QualityGate(oracle).judge([make_question("a")])

        assert verdicts[0].approved

    @pytest.mark.asyncio
    async def test_fail_closed_policy(self, make_question):
        """Verifica rejeicao de tudo com fail_open=False."""
        from quiz.engine import QualityGate

        gate = QualityGate(_oracle(error=QualityOracleError("timeout")), fail_open=False)

        verdicts = await gate.judge([make_question("a")])

        assert not verdicts[0].approved
        assert verdicts[0].reason == "oraculo indisponivel"

    @pytest.mark.asyncio
    async def test_empty_batch_skips_oracle(self):
        """Verifica que lote vazio nao chama o oraculo."""
        from quiz.engine import QualityGate

        oracle = _oracle()

        assert await QualityGate(oracle).judge([]) == []
        oracle.review.assert_not_called()


class TestQualityGatePartition:
    """Testes para a separacao aprovadas/rejeitadas."""

    @pytest.mark.asyncio
    async def test_partition_preserves_order(self, make_question):
        """Verifica separacao mantendo a ordem."""
        from quiz.engine import QualityGate

        questions = [make_question(x) for x in "abcd"]
        oracle = _oracle([QualityVerdict(id="b", approved=False), QualityVerdict(id="d", approved=False)])

        approved, rejected = await QualityGate(oracle).partition(questions)

        assert [q.id for q in approved] == ["a", "c"]
        assert [q.id for q in rejected] == ["b", "d"]
