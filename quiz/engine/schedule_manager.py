"""Schedule Manager - Ciclo de vida das agendas de quiz."""

import datetime as dt
import logging
import random
import uuid
from collections.abc import Callable

from ..config import SelectionConfig, TimingConfig
from ..errors import ScheduleNotFoundError
from ..models.enums import ScheduleStatus, TimeSlot
from ..models.schemas import Schedule, ScheduleDraft
from ..models.state import ensure_transition
from ..storage.quiz_store import ScheduleStore, UsedQuestionStore, utc_now
from .acquisition import AcquisitionLoop
from .delivery import DeliverySequencer
from .selector import QuestionRepository

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (ScheduleStatus.SCHEDULED, ScheduleStatus.IN_PROGRESS)


def generate_schedule_id(now: dt.datetime | None = None) -> str:
    """ID no formato quiz_<epoch ms>_<sufixo aleatorio>."""
    now = now or utc_now()
    return f"quiz_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


class ScheduleManager:
    """Dono da maquina de estados das agendas.

    Transicoes validas:
        scheduled -> in_progress -> completed
        scheduled | in_progress -> cancelled

    Garante no maximo uma agenda nao terminal por (data, slot): toda criacao
    faz a busca antes de gravar.

    Example:
        >>> manager = ScheduleManager(schedules, used, repository, acquisition, sequencer)
        >>> schedule = await manager.run_slot(dt.date(2025, 1, 10), TimeSlot.MORNING)
        >>> schedule.status
        <ScheduleStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        schedules: ScheduleStore,
        used_questions: UsedQuestionStore,
        repository: QuestionRepository,
        acquisition: AcquisitionLoop,
        sequencer: DeliverySequencer,
        selection: SelectionConfig | None = None,
        timing: TimingConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ):
        self.schedules = schedules
        self.used_questions = used_questions
        self.repository = repository
        self.acquisition = acquisition
        self.sequencer = sequencer
        self.selection = selection or SelectionConfig()
        self.timing = timing or TimingConfig()
        self.rng = rng or random.Random()
        self.clock = clock

    def today(self) -> dt.date:
        """Data local no fuso de referencia."""
        return self.clock().astimezone(self.timing.tzinfo).date()

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    async def get_schedule_for(self, date: dt.date, time: TimeSlot) -> Schedule | None:
        """Agenda 'scheduled' de (data, slot), a unica que o trigger executa."""
        return await self.schedules.find_by_slot(date, time, statuses=[ScheduleStatus.SCHEDULED])

    async def find_active(self, date: dt.date, time: TimeSlot) -> Schedule | None:
        """Agenda nao terminal de (data, slot)."""
        return await self.schedules.find_by_slot(date, time, statuses=ACTIVE_STATUSES)

    async def get(self, schedule_id: str) -> Schedule:
        schedule = await self.schedules.get(schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(f"Agenda {schedule_id} nao encontrada")
        return schedule

    async def list_schedules(self) -> list[Schedule]:
        schedules = await self.schedules.load()
        return sorted(schedules, key=lambda s: (s.date, s.time.value, s.created_at))

    async def get_upcoming(self, today: dt.date | None = None) -> list[Schedule]:
        return await self.schedules.list_upcoming(today or self.today())

    # =========================================================================
    # ESCRITA
    # =========================================================================

    async def create_schedule(self, draft: ScheduleDraft) -> Schedule:
        """Cria a agenda, ou devolve a agenda ativa ja existente para o slot."""
        existing = await self.find_active(draft.date, draft.time)
        if existing is not None:
            logger.info(f"Agenda ja existe para {draft.date} {draft.time.value}: {existing.id}")
            return existing

        now = self.clock()
        schedule = Schedule(
            **draft.model_dump(),
            id=generate_schedule_id(now),
            status=ScheduleStatus.SCHEDULED,
            created_at=now,
        )
        await self.schedules.add(schedule)
        logger.info(f"Agenda criada: {schedule.title!r} em {schedule.date} as {schedule.time.value}")
        return schedule

    async def transition(
        self,
        schedule_id: str,
        target: ScheduleStatus,
        questions_sent: int | None = None,
        reason: str | None = None,
    ) -> Schedule:
        """Aplica uma transicao validada e persiste.

        Raises:
            ScheduleNotFoundError: Agenda inexistente
            InvalidTransitionError: Transicao fora da maquina de estados
        """
        current = await self.get(schedule_id)
        ensure_transition(current.status, target)

        update: dict = {"status": target}
        if questions_sent is not None:
            update["questions_sent"] = questions_sent
        if target == ScheduleStatus.COMPLETED:
            update["completed_at"] = self.clock()
        if target == ScheduleStatus.CANCELLED:
            update["cancel_reason"] = reason

        updated = current.model_copy(update=update)
        await self.schedules.replace(updated)
        logger.info(f"Agenda {schedule_id}: {current.status.value} -> {target.value}")
        return updated

    async def cancel_schedule(self, schedule_id: str, reason: str | None = None) -> Schedule:
        return await self.transition(schedule_id, ScheduleStatus.CANCELLED, reason=reason or "cancelada manualmente")

    async def _cancel_after_error(self, schedule_id: str, reason: str) -> Schedule | None:
        current = await self.schedules.get(schedule_id)
        if current is None or current.is_terminal:
            return current
        return await self.transition(schedule_id, ScheduleStatus.CANCELLED, reason=reason)

    # =========================================================================
    # EXECUCAO
    # =========================================================================

    async def execute(self, schedule: Schedule) -> Schedule:
        """Roda a sessao: aquisicao, entrega e status final.

        Apenas agendas 'scheduled' sao executadas; qualquer outra e devolvida
        sem efeito. A sessao so termina 'completed' se todas as questoes
        pedidas foram enviadas; caso contrario termina 'cancelled'.
        """
        current = await self.get(schedule.id)
        if current.status != ScheduleStatus.SCHEDULED:
            logger.warning(f"Agenda {current.id} em {current.status.value}, execucao ignorada")
            return current

        logger.info(f"Executando quiz: {current.title!r}")
        running = await self.transition(current.id, ScheduleStatus.IN_PROGRESS)

        try:
            acquired = await self.acquisition.acquire(
                running.question_count,
                subject_ids=running.subject_ids,
                chapter_ids=running.chapter_ids,
            )
            logger.debug(f"Aquisicao do quiz {running.id}: {acquired.to_dict()}")
            if acquired.is_empty:
                logger.error(f"Nenhuma questao disponivel para o quiz {running.title!r}")
                return await self.transition(
                    running.id, ScheduleStatus.CANCELLED, questions_sent=0, reason="nenhuma questao aprovada"
                )

            delivery = await self.sequencer.deliver(running, acquired.accepted)
            if delivery.sent_question_ids:
                await self.used_questions.mark_used(delivery.sent_question_ids, running.id)

            if delivery.success and delivery.questions_sent == running.question_count:
                return await self.transition(
                    running.id, ScheduleStatus.COMPLETED, questions_sent=delivery.questions_sent
                )

            if not delivery.success:
                reason = "falha na entrega"
            else:
                reason = f"entrega parcial: {delivery.questions_sent}/{running.question_count}"
            logger.warning(f"Quiz {running.id} cancelado: {reason}")
            return await self.transition(
                running.id, ScheduleStatus.CANCELLED, questions_sent=delivery.questions_sent, reason=reason
            )
        except Exception as e:
            logger.error(f"Execucao do quiz {running.id} falhou: {e}", exc_info=True)
            cancelled = await self._cancel_after_error(running.id, f"erro: {e}")
            return cancelled or running

    async def auto_generate(self, date: dt.date, time: TimeSlot) -> Schedule | None:
        """Gera uma agenda aleatoria para o slot (materia + ate 3 capitulos).

        Idempotente: se ja existe agenda ativa para o slot, ela e devolvida.

        Returns:
            Agenda do slot, ou None se nao ha materias
        """
        existing = await self.find_active(date, time)
        if existing is not None:
            return existing

        logger.info(f"Gerando quiz automatico para {date} {time.value}")
        subjects = await self.repository.list_subjects()
        if not subjects:
            logger.warning("Sem materias para geracao automatica")
            return None

        subject = self.rng.choice(subjects)
        chapters = await self.repository.list_chapters(subject.id)
        picked = self.rng.sample(chapters, min(self.selection.max_auto_chapters, len(chapters)))
        chapter_names = [c.name for c in picked]

        draft = ScheduleDraft(
            date=date,
            time=time,
            subject_ids=[subject.id],
            chapter_ids=[c.id for c in picked],
            subject_names=[subject.name],
            chapter_names=chapter_names,
            question_count=self.selection.default_question_count,
            title=f"{subject.name} - {', '.join(chapter_names)}" if chapter_names else subject.name,
        )
        return await self.create_schedule(draft)

    async def run_slot(self, date: dt.date, time: TimeSlot) -> Schedule | None:
        """Entrada do trigger para um slot.

        in_progress -> nada a fazer; scheduled -> executa; sem agenda ativa ->
        gera automaticamente e executa.
        """
        active = await self.find_active(date, time)
        if active is not None and active.status == ScheduleStatus.IN_PROGRESS:
            logger.info(f"Quiz {active.id} ja em andamento para {date} {time.value}")
            return active

        if active is None:
            logger.info(f"Nenhum quiz agendado para {date} {time.value}")
            active = await self.auto_generate(date, time)
            if active is None:
                return None

        return await self.execute(active)

    async def notify(self, date: dt.date, time: TimeSlot) -> Schedule | None:
        """Envia o aviso previo se houver agenda 'scheduled' para o slot.

        Raises:
            GatewayError: Falha no envio
        """
        schedule = await self.get_schedule_for(date, time)
        if schedule is None:
            logger.info(f"Sem quiz agendado para avisar em {date} {time.value}")
            return None
        await self.sequencer.send_notification(schedule)
        return schedule
