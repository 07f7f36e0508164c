"""Question Deduplication Engine - Filtros de exclusao e deduplicacao de questoes."""

import logging
from collections.abc import Iterable

from ..models.schemas import Question

logger = logging.getLogger(__name__)


class QuestionDeduplicationEngine:
    """Motor de deduplicacao para evitar questoes repetidas em uma selecao.

    Duas regras:
        - Exclusao por id (questoes usadas recentemente ou ja sorteadas)
        - Deduplicacao por `dedupe_key` (fingerprint de conteudo); a primeira
          ocorrencia vence, chaves vazias nunca colidem

    Mantem as chaves ja vistas, entao a mesma instancia pode ser usada entre
    tentativas sucessivas de uma aquisicao.

    Example:
        >>> engine = QuestionDeduplicationEngine()
        >>> fresh = engine.filter_excluded(questions, recently_used)
        >>> unique = engine.dedupe_by_key(fresh)
    """

    def __init__(self, seen_keys: Iterable[str] = ()):
        self._seen_keys: set[str] = {k for k in seen_keys if k}

    @property
    def seen_keys(self) -> frozenset[str]:
        return frozenset(self._seen_keys)

    @staticmethod
    def normalize_key(key: str | None) -> str | None:
        """Chave normalizada, ou None se vazia."""
        if key is None:
            return None
        key = key.strip()
        return key or None

    def filter_excluded(self, questions: Iterable[Question], excluded_ids: Iterable[str]) -> list[Question]:
        """Remove questoes cujo id esta no conjunto de exclusao."""
        excluded = set(excluded_ids)
        kept = [q for q in questions if q.id not in excluded]
        return kept

    def is_duplicate(self, question: Question) -> bool:
        """Verifica se a chave da questao ja foi vista."""
        key = self.normalize_key(question.dedupe_key)
        return key is not None and key in self._seen_keys

    def remember(self, questions: Iterable[Question]) -> None:
        """Registra as chaves de questoes ja aceitas/sorteadas."""
        for question in questions:
            key = self.normalize_key(question.dedupe_key)
            if key is not None:
                self._seen_keys.add(key)

    def dedupe_by_key(self, questions: Iterable[Question]) -> list[Question]:
        """Remove questoes com chave repetida (primeira ocorrencia vence).

        Args:
            questions: Candidatas, na ordem em que foram buscadas

        Returns:
            Lista sem duas questoes com a mesma chave nao vazia
        """
        unique = []
        duplicates = 0
        for question in questions:
            if self.is_duplicate(question):
                duplicates += 1
                continue
            self.remember([question])
            unique.append(question)

        if duplicates:
            logger.debug(f"{duplicates} questoes duplicadas por dedupe_key removidas")
        return unique


def has_duplicate_keys(questions: Iterable[Question]) -> bool:
    """True se duas questoes compartilham uma dedupe_key nao vazia."""
    seen: set[str] = set()
    for question in questions:
        key = QuestionDeduplicationEngine.normalize_key(question.dedupe_key)
        if key is None:
            continue
        if key in seen:
            return True
        seen.add(key)
    return False
