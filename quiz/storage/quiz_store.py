"""Quiz Store - Persistencia de agendas e questoes usadas sobre um KV store."""

from __future__ import annotations

import copy
import datetime as dt
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

if TYPE_CHECKING:
    from agentfs_sdk import AgentFS

from ..errors import ScheduleNotFoundError
from ..models.enums import ScheduleStatus, TimeSlot
from ..models.schemas import Schedule, UsedQuestionRecord

logger = logging.getLogger(__name__)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# KV STORE
# =============================================================================


class KeyValueStore(Protocol):
    """Contrato do KV store persistente (valor inteiro, sem updates parciais)."""

    async def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


class AgentFSKeyValueStore:
    """KV store sobre o AgentFS.

    Example:
        >>> kv = await AgentFSKeyValueStore.open("quiz-bot")
        >>> await kv.set("quiz_schedules", [])
        >>> await kv.get("quiz_schedules", [])
    """

    def __init__(self, agentfs: AgentFS):
        self.agentfs = agentfs

    @classmethod
    async def open(cls, agentfs_id: str) -> AgentFSKeyValueStore:
        """Abre (ou cria) o banco AgentFS identificado por agentfs_id."""
        from agentfs_sdk import AgentFS, AgentFSOptions

        agentfs = await AgentFS.open(AgentFSOptions(id=agentfs_id))
        logger.info(f"AgentFS aberto: {agentfs_id}")
        return cls(agentfs)

    async def get(self, key: str, default: Any = None) -> Any:
        value = await self.agentfs.kv.get(key)
        return default if value is None else value

    async def set(self, key: str, value: Any) -> None:
        await self.agentfs.kv.set(key, value)

    async def close(self) -> None:
        await self.agentfs.close()


class InMemoryKeyValueStore:
    """KV store em memoria (fallback sem AgentFS e testes).

    Copia os valores na leitura e na escrita para manter a semantica de
    valor inteiro do store real.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


# =============================================================================
# AGENDAS
# =============================================================================


class ScheduleStore:
    """Lista de agendas persistida sob uma unica chave.

    Toda escrita e um read-modify-write da lista inteira; sem transacao,
    assume um unico scheduler ativo.
    """

    KEY = "quiz_schedules"

    def __init__(self, kv: KeyValueStore, key: str | None = None):
        self.kv = kv
        self.key = key or self.KEY

    async def load(self) -> list[Schedule]:
        """Carrega todas as agendas (registros invalidos sao ignorados)."""
        raw = await self.kv.get(self.key, [])
        schedules = []
        for item in raw or []:
            try:
                schedules.append(Schedule.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Agenda invalida ignorada: {e.errors()[:1]}")
        return schedules

    async def save(self, schedules: list[Schedule]) -> None:
        await self.kv.set(self.key, [s.model_dump(mode="json") for s in schedules])

    async def get(self, schedule_id: str) -> Schedule | None:
        for schedule in await self.load():
            if schedule.id == schedule_id:
                return schedule
        return None

    async def find_by_slot(
        self,
        date: dt.date,
        time: TimeSlot,
        statuses: Iterable[ScheduleStatus] | None = None,
    ) -> Schedule | None:
        """Busca a agenda de (data, slot), opcionalmente filtrando por status."""
        wanted = set(statuses) if statuses is not None else None
        for schedule in await self.load():
            if not schedule.matches_slot(date, time):
                continue
            if wanted is None or schedule.status in wanted:
                return schedule
        return None

    async def add(self, schedule: Schedule) -> None:
        schedules = await self.load()
        schedules.append(schedule)
        await self.save(schedules)
        logger.debug(f"Agenda salva: {schedule.id}")

    async def replace(self, schedule: Schedule) -> None:
        """Substitui a agenda com o mesmo id."""
        schedules = await self.load()
        for index, current in enumerate(schedules):
            if current.id == schedule.id:
                schedules[index] = schedule
                await self.save(schedules)
                return
        raise ScheduleNotFoundError(f"Agenda {schedule.id} nao encontrada")

    async def list_upcoming(self, today: dt.date) -> list[Schedule]:
        """Agendas ainda 'scheduled' de hoje em diante, em ordem cronologica."""
        upcoming = [
            s for s in await self.load()
            if s.status == ScheduleStatus.SCHEDULED and s.date >= today
        ]
        return sorted(upcoming, key=lambda s: (s.date, s.time.value))


# =============================================================================
# QUESTOES USADAS
# =============================================================================


class UsedQuestionStore:
    """Log append-only de questoes entregues, podado a cada escrita."""

    KEY = "quiz_used_questions"

    def __init__(self, kv: KeyValueStore, key: str | None = None, retention_days: int = 30):
        self.kv = kv
        self.key = key or self.KEY
        self.retention_days = retention_days

    async def load(self) -> list[UsedQuestionRecord]:
        raw = await self.kv.get(self.key, [])
        records = []
        for item in raw or []:
            try:
                records.append(UsedQuestionRecord.model_validate(item))
            except ValidationError:
                logger.warning(f"Registro de uso invalido ignorado: {item!r}")
        return records

    async def mark_used(
        self,
        question_ids: Iterable[str],
        schedule_id: str,
        now: dt.datetime | None = None,
    ) -> int:
        """Registra questoes como usadas e poda registros fora da retencao.

        Returns:
            Quantidade de registros adicionados
        """
        now = now or utc_now()
        cutoff = now - dt.timedelta(days=self.retention_days)

        kept = [r for r in await self.load() if r.used_at > cutoff]
        new_records = [
            UsedQuestionRecord(question_id=qid, schedule_id=schedule_id, used_at=now)
            for qid in question_ids
        ]

        await self.kv.set(
            self.key, [r.model_dump(mode="json") for r in kept + new_records]
        )
        logger.info(f"{len(new_records)} questoes marcadas como usadas (agenda {schedule_id})")
        return len(new_records)

    async def recently_used_ids(self, days: int, now: dt.datetime | None = None) -> set[str]:
        """IDs usados nos ultimos `days` dias."""
        now = now or utc_now()
        cutoff = now - dt.timedelta(days=days)
        return {r.question_id for r in await self.load() if r.used_at > cutoff}
