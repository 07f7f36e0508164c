"""Schedule Planner - Agenda semanal e quiz de teste com apoio do LLM."""

import datetime as dt
import logging
import random
from collections.abc import Callable
from typing import Protocol

from ..config import SelectionConfig, TimingConfig
from ..errors import LLMClientError
from ..models.enums import ScheduleStatus, TimeSlot
from ..models.schemas import (
    Chapter,
    ChapterSummary,
    PlannedQuiz,
    Schedule,
    ScheduleDraft,
    Subject,
    SubjectSelection,
    SubjectSummary,
)
from ..storage.quiz_store import utc_now
from .schedule_manager import ScheduleManager
from .selector import QuestionRepository

logger = logging.getLogger(__name__)

# Horas locais [0, 20) caem no slot da manha
EVENING_CUTOFF_HOUR = 20


class SchedulePlannerLLM(Protocol):
    async def plan_week(
        self, subjects: list[SubjectSummary], start: dt.date, days_ahead: int = 7
    ) -> list[PlannedQuiz]: ...

    async def select_subjects(self, subjects: list[SubjectSummary], question_count: int) -> SubjectSelection: ...


def build_subject_summaries(subjects: list[Subject], chapters: list[Chapter]) -> list[SubjectSummary]:
    """Resumo materia -> capitulos (com contagem de questoes) para o LLM."""
    by_subject: dict[str, list[ChapterSummary]] = {}
    for chapter in chapters:
        by_subject.setdefault(chapter.subject_id, []).append(
            ChapterSummary(id=chapter.id, name=chapter.name, question_count=chapter.total_questions)
        )
    return [
        SubjectSummary(
            id=subject.id,
            name=subject.name,
            total_questions=subject.total_questions,
            chapters=by_subject.get(subject.id, []),
        )
        for subject in subjects
    ]


def slot_for_hour(hour: int) -> TimeSlot:
    return TimeSlot.MORNING if hour < EVENING_CUTOFF_HOUR else TimeSlot.EVENING


class SchedulePlanner:
    """Planejamento de agendas: semana via LLM, quiz de teste e nomes de exibicao.

    Example:
        >>> planner = SchedulePlanner(manager, repository, LLMSchedulePlanner(llm))
        >>> created = await planner.plan_week(days_ahead=7)
    """

    def __init__(
        self,
        manager: ScheduleManager,
        repository: QuestionRepository,
        llm: SchedulePlannerLLM | None = None,
        selection: SelectionConfig | None = None,
        timing: TimingConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ):
        self.manager = manager
        self.repository = repository
        self.llm = llm
        self.selection = selection or SelectionConfig()
        self.timing = timing or TimingConfig()
        self.rng = rng or random.Random()
        self.clock = clock

    def local_now(self) -> dt.datetime:
        return self.clock().astimezone(self.timing.tzinfo)

    async def _catalog(self) -> tuple[list[Subject], list[Chapter]]:
        return await self.repository.list_subjects(), await self.repository.list_chapters()

    async def resolve_display_names(
        self, subject_ids: list[str], chapter_ids: list[str]
    ) -> tuple[list[str], list[str]]:
        """Nomes de materias e capitulos na ordem dos ids (ids desconhecidos sao ignorados)."""
        subjects, chapters = await self._catalog()
        return self._names(subjects, chapters, subject_ids, chapter_ids)

    @staticmethod
    def _names(
        subjects: list[Subject], chapters: list[Chapter], subject_ids: list[str], chapter_ids: list[str]
    ) -> tuple[list[str], list[str]]:
        subject_names = {s.id: s.name for s in subjects}
        chapter_names = {c.id: c.name for c in chapters}
        return (
            [subject_names[i] for i in subject_ids if i in subject_names],
            [chapter_names[i] for i in chapter_ids if i in chapter_names],
        )

    # =========================================================================
    # AGENDA SEMANAL
    # =========================================================================

    async def plan_week(self, days_ahead: int = 7, start: dt.date | None = None) -> list[Schedule]:
        """Gera e grava a agenda dos proximos dias (dois quizzes por dia).

        Quizzes fora da janela, em slot ja ocupado ou sem materia conhecida
        sao descartados. Falha do LLM resulta em agenda vazia.

        Returns:
            Agendas criadas nesta chamada
        """
        start = start or self.local_now().date()
        end = start + dt.timedelta(days=days_ahead)

        if self.llm is None:
            logger.warning("Planejamento semanal sem LLM configurado")
            return []

        subjects, chapters = await self._catalog()
        if not subjects:
            logger.warning("Sem materias para planejar a semana")
            return []

        try:
            planned = await self.llm.plan_week(build_subject_summaries(subjects, chapters), start, days_ahead)
        except LLMClientError as e:
            logger.error(f"Geracao da agenda semanal falhou: {e}")
            return []

        known_subjects = {s.id for s in subjects}
        known_chapters = {c.id for c in chapters}
        created: list[Schedule] = []

        for item in planned:
            if not start <= item.date < end:
                logger.warning(f"Quiz planejado fora da janela ignorado: {item.date}")
                continue

            subject_ids = [i for i in item.subject_ids if i in known_subjects]
            chapter_ids = [i for i in item.chapter_ids if i in known_chapters]
            if not subject_ids:
                logger.warning(f"Quiz planejado sem materia conhecida ignorado: {item.title!r}")
                continue

            if await self.manager.find_active(item.date, item.time) is not None:
                logger.info(f"Slot {item.date} {item.time.value} ja ocupado, quiz planejado ignorado")
                continue

            subject_names, chapter_names = self._names(subjects, chapters, subject_ids, chapter_ids)
            created.append(
                await self.manager.create_schedule(
                    ScheduleDraft(
                        date=item.date,
                        time=item.time,
                        subject_ids=subject_ids,
                        chapter_ids=chapter_ids,
                        subject_names=subject_names,
                        chapter_names=chapter_names,
                        question_count=item.question_count,
                        title=item.title or ", ".join(subject_names),
                    )
                )
            )

        logger.info(f"{len(created)} agendas criadas para os proximos {days_ahead} dias")
        return created

    # =========================================================================
    # QUIZ DE TESTE
    # =========================================================================

    async def _llm_selection(
        self, subjects: list[Subject], chapters: list[Chapter], question_count: int
    ) -> SubjectSelection | None:
        if self.llm is None:
            return None
        try:
            selection = await self.llm.select_subjects(
                build_subject_summaries(subjects, chapters), question_count
            )
        except LLMClientError as e:
            logger.warning(f"Selecao por LLM falhou: {e}")
            return None

        known_subjects = {s.id for s in subjects}
        chapter_subject = {c.id: c.subject_id for c in chapters}
        chapter_ids = [i for i in selection.chapter_ids if i in chapter_subject]
        subject_ids = [i for i in selection.subject_ids if i in known_subjects]
        if not subject_ids:
            # Materias deduzidas dos capitulos escolhidos
            subject_ids = list(dict.fromkeys(chapter_subject[i] for i in chapter_ids))
        if not subject_ids:
            logger.warning("LLM selecionou apenas ids desconhecidos")
            return None

        return selection.model_copy(update={"subject_ids": subject_ids, "chapter_ids": chapter_ids})

    def _random_selection(self, subjects: list[Subject], chapters: list[Chapter]) -> SubjectSelection:
        subject = self.rng.choice(subjects)
        subject_chapters = [c for c in chapters if c.subject_id == subject.id][: self.selection.max_auto_chapters]
        return SubjectSelection(
            subject_ids=[subject.id],
            chapter_ids=[c.id for c in subject_chapters],
            title=f"{subject.name} Quiz",
            reasoning="selecao aleatoria",
        )

    async def trigger_test_quiz(self, question_count: int = 20) -> Schedule | None:
        """Cria um quiz para o slot atual e executa imediatamente.

        O LLM escolhe materias e capitulos; se falhar, a escolha e aleatoria.
        Se o slot ja tem agenda ativa, nada e executado.

        Returns:
            Agenda final, ou None se nao ha materias ou o slot esta ocupado
        """
        now = self.local_now()
        date, time = now.date(), slot_for_hour(now.hour)
        logger.info(f"Quiz de teste com {question_count} questoes para {date} {time.value}")

        active = await self.manager.find_active(date, time)
        if active is not None:
            logger.warning(f"Slot {date} {time.value} ja tem agenda {active.status.value} ({active.id})")
            return None

        subjects, chapters = await self._catalog()
        if not subjects:
            logger.error("Sem materias para o quiz de teste")
            return None

        selection = await self._llm_selection(subjects, chapters, question_count)
        if selection is None:
            logger.info("Usando selecao aleatoria")
            selection = self._random_selection(subjects, chapters)

        subject_names, chapter_names = self._names(subjects, chapters, selection.subject_ids, selection.chapter_ids)
        schedule = await self.manager.create_schedule(
            ScheduleDraft(
                date=date,
                time=time,
                subject_ids=selection.subject_ids,
                chapter_ids=selection.chapter_ids,
                subject_names=subject_names,
                chapter_names=chapter_names,
                question_count=question_count,
                title=selection.title or ", ".join(subject_names),
            )
        )
        if schedule.status != ScheduleStatus.SCHEDULED:
            return schedule
        return await self.manager.execute(schedule)
