"""Core module - montagem dos servicos compartilhados pelo servidor e pelo router de quiz."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
from fastapi import HTTPException, Request

from quiz.clients import AstraQuestionRepository, TelegramGateway
from quiz.config import QuizConfig
from quiz.engine import (
    AcquisitionLoop,
    DeliverySequencer,
    QualityGate,
    QuestionSelector,
    SchedulePlanner,
    ScheduleManager,
    SchedulerTrigger,
)
from quiz.llm import LLMQualityOracle, LLMSchedulePlanner, MistralChatClient
from quiz.storage import AgentFSKeyValueStore, InMemoryKeyValueStore, ScheduleStore, UsedQuestionStore

if TYPE_CHECKING:
    from quiz.storage import KeyValueStore

logger = logging.getLogger(__name__)


# =============================================================================
# SERVICOS
# =============================================================================


@dataclass
class QuizServices:
    """Tudo que o quiz precisa, montado uma vez por app.

    Fica em `app.state.quiz`; nao ha singletons de modulo.
    """

    config: QuizConfig
    kv: KeyValueStore
    http: httpx.AsyncClient
    repository: AstraQuestionRepository
    gateway: TelegramGateway
    schedules: ScheduleStore
    used_questions: UsedQuestionStore
    manager: ScheduleManager
    planner: SchedulePlanner
    trigger: SchedulerTrigger
    owns_http: bool = field(default=True, repr=False)

    async def close(self) -> None:
        """Para o trigger e libera os recursos HTTP/AgentFS."""
        await self.trigger.stop()
        if self.owns_http:
            await self.http.aclose()
        if isinstance(self.kv, AgentFSKeyValueStore):
            await self.kv.close()
            logger.info("AgentFS fechado")


async def open_kv_store(config: QuizConfig) -> KeyValueStore:
    """KV store do AgentFS, ou store em memoria se o AgentFS nao abrir."""
    try:
        return await AgentFSKeyValueStore.open(config.storage.agentfs_id)
    except (OSError, RuntimeError) as e:
        logger.warning(f"AgentFS indisponivel ({e}), usando store em memoria")
        return InMemoryKeyValueStore()


async def build_services(
    config: QuizConfig,
    kv: KeyValueStore | None = None,
    http: httpx.AsyncClient | None = None,
    rng: random.Random | None = None,
) -> QuizServices:
    """Monta banco, gateway, LLM, stores e engines a partir da config.

    Args:
        config: Configuracao do quiz
        kv: Key-value store (padrao: AgentFS)
        http: Cliente HTTP compartilhado (padrao: um novo com config.http_timeout)
        rng: Fonte aleatoria compartilhada por seletor, manager e planner
    """
    owns_http = http is None
    http = http or httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout))
    kv = kv or await open_kv_store(config)
    rng = rng or random.Random()

    repository = AstraQuestionRepository(config.astra, http)
    gateway = TelegramGateway(config.telegram, http)
    llm = MistralChatClient(config.llm, http)

    schedules = ScheduleStore(kv, key=config.storage.schedules_key)
    used_questions = UsedQuestionStore(
        kv,
        key=config.storage.used_questions_key,
        retention_days=config.selection.used_retention_days,
    )

    selector = QuestionSelector(repository, used_questions, config.selection, rng=rng)
    gate = QualityGate(LLMQualityOracle(llm), fail_open=config.selection.fail_open_on_oracle_error)
    acquisition = AcquisitionLoop(selector, gate, config.selection)
    sequencer = DeliverySequencer(gateway, config.timing)

    manager = ScheduleManager(
        schedules,
        used_questions,
        repository,
        acquisition,
        sequencer,
        selection=config.selection,
        timing=config.timing,
        rng=rng,
    )
    planner = SchedulePlanner(
        manager,
        repository,
        LLMSchedulePlanner(llm) if llm.configured else None,
        selection=config.selection,
        timing=config.timing,
        rng=rng,
    )
    trigger = SchedulerTrigger(manager, config.timing)

    return QuizServices(
        config=config,
        kv=kv,
        http=http,
        repository=repository,
        gateway=gateway,
        schedules=schedules,
        used_questions=used_questions,
        manager=manager,
        planner=planner,
        trigger=trigger,
        owns_http=owns_http,
    )


# =============================================================================
# DEPENDENCIAS
# =============================================================================


def get_services(request: Request) -> QuizServices:
    """Dependencia FastAPI que devolve os QuizServices do app."""
    services = getattr(request.app.state, "quiz", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Servicos de quiz nao inicializados")
    return services
