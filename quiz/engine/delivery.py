"""Delivery Sequencer - Envia a sessao de quiz como enquetes cadenciadas."""

import asyncio
import datetime as dt
import html
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from ..config import TimingConfig
from ..errors import GatewayError
from ..models.enums import LanguageMode
from ..models.schemas import DeliveryResult, PollMessage, Question, Schedule
from ..prompts.templates import (
    ENGLISH_MARKERS,
    ENGLISH_QUESTION_HEADER,
    HINDI_MARKERS,
    HINDI_QUESTION_HEADER,
    format_complete_message,
    format_notification_message,
    format_start_message,
)

logger = logging.getLogger(__name__)

# Limites de enquete da plataforma
MAX_QUESTION_LENGTH = 300
MAX_OPTION_LENGTH = 100
MAX_EXPLANATION_LENGTH = 200
MIN_POLL_OPTIONS = 2

ELLIPSIS = "..."

FORMAT_LABELS = {
    LanguageMode.BILINGUAL: "Bilingual (Hindi + English)",
    LanguageMode.HINDI: "Hindi",
    LanguageMode.ENGLISH: "English",
}

_MARKDOWN_EMPHASIS = re.compile(r"\*\*|\*|_")


class MessagingGateway(Protocol):
    """Gateway de mensagens (Telegram ou fake em testes)."""

    async def send_message(self, text: str) -> dict: ...

    async def send_poll(self, poll: PollMessage) -> dict: ...


# =============================================================================
# FORMATACAO
# =============================================================================


def truncate(text: str, max_length: int) -> str:
    """Corta o texto no limite, terminando com '...'."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def format_explanation(explanation: str | None) -> str | None:
    """Remove marcadores de markdown, escapa HTML e aplica o limite de 200 chars.

    O limite vale para o texto ja escapado; o corte nunca cai no meio de
    uma entidade como '&amp;'.
    """
    cleaned = _MARKDOWN_EMPHASIS.sub("", explanation or "").strip()
    if not cleaned:
        return None

    escaped = html.escape(cleaned, quote=False)
    if len(escaped) <= MAX_EXPLANATION_LENGTH:
        return escaped

    budget = MAX_EXPLANATION_LENGTH - len(ELLIPSIS)
    head = cleaned[:budget]
    while len(html.escape(head, quote=False)) > budget:
        head = head[:-1]
    return html.escape(head, quote=False) + ELLIPSIS


def resolve_correct_index(question: Question) -> int:
    """Indice (base 0) da alternativa correta.

    Ordem de tentativa:
        1. Letra unica dentro do intervalo (A -> 0, B -> 1, ...)
        2. Texto igual a uma alternativa (ingles, depois hindi)
        3. Texto contido em uma alternativa (ingles, depois hindi)
        4. 0, com warning

    Example:
        >>> resolve_correct_index(question_with_answer("C"))
        2
    """
    answer = (question.correct_answer or "").strip()
    option_lists = [question.options_english, question.options_hindi]
    option_count = max(len(options) for options in option_lists)

    if len(answer) == 1 and answer.isalpha():
        index = ord(answer.upper()) - ord("A")
        if 0 <= index < option_count:
            return index
        logger.warning(f"Resposta {answer!r} fora das alternativas na questao {question.id}")
        return 0

    needle = answer.lower()
    if needle:
        for options in option_lists:
            for index, option in enumerate(options):
                if option.strip().lower() == needle:
                    return index
        for options in option_lists:
            for index, option in enumerate(options):
                if needle in option.lower():
                    return index

    logger.warning(f"Nao foi possivel determinar a resposta correta da questao {question.id}")
    return 0


def detect_language_mode(subject_names: Iterable[str]) -> LanguageMode:
    """Materia de idioma (Hindi/English) restringe a sessao a esse idioma."""
    for name in subject_names:
        lowered = name.lower()
        if any(marker in lowered for marker in HINDI_MARKERS):
            logger.info(f"Modo de idioma: HINDI (detectado em {name!r})")
            return LanguageMode.HINDI
        if any(marker in lowered for marker in ENGLISH_MARKERS):
            logger.info(f"Modo de idioma: ENGLISH (detectado em {name!r})")
            return LanguageMode.ENGLISH
    return LanguageMode.BILINGUAL


def build_poll(
    header: str,
    text: str,
    options: list[str],
    correct_index: int,
    explanation: str | None,
) -> PollMessage | None:
    """Monta a enquete ja truncada, ou None se as alternativas nao permitem."""
    if len(options) < MIN_POLL_OPTIONS or correct_index >= len(options):
        return None
    return PollMessage(
        question=truncate(f"{header}\n\n{text}", MAX_QUESTION_LENGTH),
        options=[truncate(option, MAX_OPTION_LENGTH) for option in options],
        correct_option_id=correct_index,
        explanation=format_explanation(explanation),
    )


# =============================================================================
# SEQUENCIADOR
# =============================================================================


class DeliverySequencer:
    """Entrega uma sessao: anuncio, enquetes cadenciadas e resumo.

    As pausas sao `await` explicitos com duracoes de `TimingConfig`
    (use `TimingConfig.immediate()` em testes).

    Example:
        >>> sequencer = DeliverySequencer(gateway, config.timing)
        >>> result = await sequencer.deliver(schedule, questions)
        >>> result.questions_sent
        20
    """

    def __init__(
        self,
        gateway: MessagingGateway,
        timing: TimingConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.timing = timing or TimingConfig()
        self._sleep = sleep

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)

    def build_polls(
        self, question: Question, index: int, total: int, mode: LanguageMode
    ) -> list[tuple[str, PollMessage | None]]:
        """Enquetes da questao, hindi antes de ingles."""
        correct = resolve_correct_index(question)
        polls: list[tuple[str, PollMessage | None]] = []

        if mode in (LanguageMode.BILINGUAL, LanguageMode.HINDI):
            polls.append((
                "hindi",
                build_poll(
                    HINDI_QUESTION_HEADER.format(index=index, total=total),
                    question.hindi_text,
                    question.options_hindi,
                    correct,
                    question.explanation_hindi,
                ),
            ))
        if mode in (LanguageMode.BILINGUAL, LanguageMode.ENGLISH):
            polls.append((
                "english",
                build_poll(
                    ENGLISH_QUESTION_HEADER.format(index=index, total=total),
                    question.english_text,
                    question.options_english,
                    correct,
                    question.explanation_english,
                ),
            ))
        return polls

    async def send_question(self, question: Question, index: int, total: int, mode: LanguageMode) -> bool:
        """Envia as enquetes de uma questao.

        Falhas do gateway sao logadas e nao interrompem a sessao.

        Returns:
            True se ao menos uma enquete foi enviada
        """
        sent_any = False
        polls = self.build_polls(question, index, total, mode)

        for position, (language, poll) in enumerate(polls):
            if poll is None:
                logger.warning(f"Questao {question.id} sem alternativas validas em {language}, enquete pulada")
            else:
                try:
                    await self.gateway.send_poll(poll)
                    sent_any = True
                except GatewayError as e:
                    logger.error(f"Falha ao enviar enquete {language} da Q{index}: {e}")

            if position < len(polls) - 1:
                await self._pause(self.timing.delay_between_languages)

        return sent_any

    async def deliver(self, schedule: Schedule, questions: list[Question]) -> DeliveryResult:
        """Executa a sessao completa.

        Returns:
            DeliveryResult; `success=False` se algo escapou do loop (ex:
            anuncio de inicio falhou), com a contagem parcial enviada
        """
        total = len(questions)
        mode = detect_language_mode(schedule.subject_names)
        sent_ids: list[str] = []
        logger.info(f"Iniciando quiz {schedule.title!r}: {total} questoes, modo {mode.value}")

        try:
            await self.gateway.send_message(format_start_message(schedule, total, FORMAT_LABELS[mode]))
            await self._pause(self.timing.start_delay)

            for position, question in enumerate(questions, start=1):
                logger.info(f"Enviando questao {position}/{total}")
                if await self.send_question(question, position, total, mode):
                    sent_ids.append(question.id)
                if position < total:
                    await self._pause(self.timing.question_interval)

            await self._pause(self.timing.completion_delay)
        except Exception as e:
            logger.error(f"Quiz {schedule.id} falhou apos {len(sent_ids)} questoes: {e}", exc_info=True)
            return DeliveryResult(success=False, questions_sent=len(sent_ids), sent_question_ids=sent_ids)

        try:
            await self.gateway.send_message(format_complete_message(schedule, len(sent_ids)))
        except GatewayError as e:
            logger.error(f"Falha ao enviar resumo do quiz {schedule.id}: {e}")

        logger.info(f"Quiz concluido: {len(sent_ids)}/{total} questoes enviadas")
        return DeliveryResult(success=True, questions_sent=len(sent_ids), sent_question_ids=sent_ids)

    async def send_notification(self, schedule: Schedule, now: dt.datetime | None = None) -> None:
        """Aviso previo do quiz.

        Raises:
            GatewayError: Falha no envio
        """
        now = now or dt.datetime.now(self.timing.tzinfo)
        timezone_label = now.astimezone(self.timing.tzinfo).tzname() or self.timing.timezone
        await self.gateway.send_message(
            format_notification_message(schedule, self.timing.notification_minutes_before, timezone_label)
        )
        logger.info(f"Aviso enviado para o quiz {schedule.title!r}")
