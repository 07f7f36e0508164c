"""Quiz State - Maquina de estados da agenda e resultado da aquisicao."""

from dataclasses import dataclass, field
from typing import Any

from ..errors import InvalidTransitionError
from .enums import ScheduleStatus
from .schemas import Question

# Transicoes validas (origem -> destinos permitidos)
SCHEDULE_TRANSITIONS: dict[ScheduleStatus, frozenset[ScheduleStatus]] = {
    ScheduleStatus.SCHEDULED: frozenset({ScheduleStatus.IN_PROGRESS, ScheduleStatus.CANCELLED}),
    ScheduleStatus.IN_PROGRESS: frozenset({ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED}),
    ScheduleStatus.COMPLETED: frozenset(),
    ScheduleStatus.CANCELLED: frozenset(),
}


def can_transition(current: ScheduleStatus, target: ScheduleStatus) -> bool:
    """Verifica se a transicao current -> target e permitida."""
    return target in SCHEDULE_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: ScheduleStatus, target: ScheduleStatus) -> None:
    """Valida a transicao, levantando InvalidTransitionError se proibida."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Transicao invalida: {current.value} -> {target.value}"
        )


@dataclass
class AcquisitionResult:
    """Resultado do loop de aquisicao.

    Attributes:
        target: Numero de questoes pedido (N)
        accepted: Questoes aprovadas, truncadas em N
        attempts: Tentativas de busca efetivamente feitas
        exhausted: Se o seletor parou de devolver questoes novas
    """

    target: int
    accepted: list[Question] = field(default_factory=list)
    attempts: int = 0
    exhausted: bool = False

    @property
    def count(self) -> int:
        return len(self.accepted)

    @property
    def is_empty(self) -> bool:
        """Falha dura: nenhuma questao aprovada."""
        return not self.accepted

    @property
    def is_complete(self) -> bool:
        return self.count >= self.target

    @property
    def shortfall(self) -> int:
        return max(0, self.target - self.count)

    def to_dict(self) -> dict[str, Any]:
        """Resumo para logs/diagnostico."""
        return {
            "target": self.target,
            "accepted": self.count,
            "attempts": self.attempts,
            "exhausted": self.exhausted,
            "question_ids": [q.id for q in self.accepted],
        }
