"""Scheduler Trigger - Disparos diarios dos slots de quiz e dos avisos previos."""

import asyncio
import contextlib
import datetime as dt
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from zoneinfo import ZoneInfo

from ..config import TimingConfig
from ..models.enums import TimeSlot
from ..storage.quiz_store import utc_now
from .schedule_manager import ScheduleManager

logger = logging.getLogger(__name__)


class FiringKind(str, Enum):
    QUIZ = "quiz"
    NOTIFICATION = "notification"


@dataclass(frozen=True)
class Firing:
    """Um disparo: instante local, slot alvo e tipo."""

    at: dt.datetime
    slot: TimeSlot
    kind: FiringKind

    @property
    def date(self) -> dt.date:
        return self.at.date()


def daily_firing_times(timing: TimingConfig) -> list[tuple[dt.time, TimeSlot, FiringKind]]:
    """Horarios locais de cada dia: avisos N minutos antes e os quizzes."""
    times = []
    for slot in timing.quiz_times:
        slot_time = dt.time(slot.hour, slot.minute)
        notice = dt.datetime.combine(dt.date(2000, 1, 2), slot_time) - dt.timedelta(
            minutes=timing.notification_minutes_before
        )
        times.append((notice.time(), slot, FiringKind.NOTIFICATION))
        times.append((slot_time, slot, FiringKind.QUIZ))
    return sorted(times, key=lambda item: item[0])


def utc_cron_expression(local_time: dt.time, tz: ZoneInfo, on_date: dt.date) -> str:
    """Expressao cron (UTC) equivalente a um horario local em uma data.

    Example:
        >>> utc_cron_expression(dt.time(8, 0), ZoneInfo("Asia/Kolkata"), dt.date(2025, 1, 1))
        '30 2 * * *'
    """
    local = dt.datetime.combine(on_date, local_time, tzinfo=tz)
    utc = local.astimezone(dt.timezone.utc)
    return f"{utc.minute} {utc.hour} * * *"


def next_firing(after: dt.datetime, timing: TimingConfig) -> Firing:
    """Proximo disparo estritamente depois de `after` (datetime com fuso)."""
    tz = timing.tzinfo
    local_after = after.astimezone(tz)
    candidates = []
    for offset in range(0, 3):
        day = local_after.date() + dt.timedelta(days=offset)
        for local_time, slot, kind in daily_firing_times(timing):
            at = dt.datetime.combine(day, local_time, tzinfo=tz)
            if at > local_after:
                candidates.append(Firing(at=at, slot=slot, kind=kind))
    return min(candidates, key=lambda firing: firing.at)


class SchedulerTrigger:
    """Loop de disparos no fuso de referencia.

    Cada disparo roda em sua propria task; o loop nao espera a sessao
    terminar. `stop()` cancela o loop e aguarda as sessoes em andamento.

    Example:
        >>> trigger = SchedulerTrigger(manager, config.timing)
        >>> trigger.start()
        >>> ...
        >>> await trigger.stop()
    """

    def __init__(
        self,
        manager: ScheduleManager,
        timing: TimingConfig | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.manager = manager
        self.timing = timing or TimingConfig()
        self.clock = clock
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_firing(self, after: dt.datetime | None = None) -> Firing:
        return next_firing(after or self.clock(), self.timing)

    def cron_summary(self, on_date: dt.date | None = None) -> dict[str, str]:
        """Disparos equivalentes em UTC, para logs e /quiz/status."""
        tz = self.timing.tzinfo
        on_date = on_date or self.clock().astimezone(tz).date()
        return {
            f"{kind.value} {slot.value}": utc_cron_expression(local_time, tz, on_date)
            for local_time, slot, kind in daily_firing_times(self.timing)
        }

    async def fire(self, firing: Firing) -> None:
        """Executa um disparo; erros sao logados e nunca derrubam o loop."""
        logger.info(f"Disparo {firing.kind.value} do slot {firing.slot.value} ({firing.date})")
        try:
            if firing.kind == FiringKind.QUIZ:
                await self.manager.run_slot(firing.date, firing.slot)
            else:
                await self.manager.notify(firing.date, firing.slot)
        except Exception as e:
            logger.error(f"Disparo {firing.kind.value} {firing.slot.value} falhou: {e}", exc_info=True)

    def _dispatch(self, firing: Firing) -> asyncio.Task:
        task = asyncio.create_task(self.fire(firing))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def run_forever(self) -> None:
        """Dorme ate o proximo disparo e o despacha, indefinidamente."""
        for name, cron in self.cron_summary().items():
            logger.info(f"Disparo agendado: {name} (cron UTC '{cron}')")

        last: dt.datetime | None = None
        while True:
            now = self.clock()
            firing = self.next_firing(max(now, last) if last else now)
            delay = (firing.at - now).total_seconds()
            logger.debug(f"Proximo disparo em {delay:.0f}s: {firing.kind.value} {firing.slot.value}")
            if delay > 0:
                await self._sleep(delay)
            last = firing.at
            self._dispatch(firing)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run_forever())
        logger.info(f"Scheduler iniciado (fuso {self.timing.timezone})")

    async def stop(self) -> None:
        """Para o loop e aguarda as sessoes ja disparadas."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        if self._inflight:
            logger.info(f"Aguardando {len(self._inflight)} disparos em andamento")
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("Scheduler parado")
