"""Quiz Router - Endpoints FastAPI de administracao das agendas."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from app_state import QuizServices, get_services

from .errors import InvalidTransitionError, QuizError, ScheduleNotFoundError
from .models.schemas import (
    CancelScheduleRequest,
    QuizStatusResponse,
    Schedule,
    ScheduleDraft,
    TriggerQuizRequest,
    WeeklyPlanRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["Quiz"])


# =============================================================================
# STATUS
# =============================================================================


@router.get("/status", response_model=QuizStatusResponse)
async def quiz_status(services: QuizServices = Depends(get_services)):
    """Configuracao efetiva e disparos em UTC."""
    config = services.config
    status = config.status()
    return QuizStatusResponse(
        enabled=config.enabled,
        astra_configured=status["astra_configured"],
        channel_configured=status["channel_configured"],
        channel_id=status["channel_id"],
        timezone=status["timezone"],
        quiz_times=status["quiz_times"],
        cron_utc=services.trigger.cron_summary(),
        missing_settings=config.validate(),
    )


# =============================================================================
# AGENDAS
# =============================================================================


@router.get("/schedules", response_model=list[Schedule])
async def list_schedules(services: QuizServices = Depends(get_services)):
    """Todas as agendas, em ordem cronologica."""
    return await services.manager.list_schedules()


@router.get("/schedules/upcoming", response_model=list[Schedule])
async def upcoming_schedules(services: QuizServices = Depends(get_services)):
    """Agendas 'scheduled' de hoje em diante."""
    return await services.manager.get_upcoming()


@router.post("/schedules", response_model=Schedule, status_code=201)
async def create_schedule(draft: ScheduleDraft, services: QuizServices = Depends(get_services)):
    """Cria uma agenda manual.

    Nomes de exibicao ausentes sao resolvidos no banco de questoes. Se o slot
    ja tem agenda ativa, ela e devolvida sem criar outra.
    """
    if not draft.subject_names and not draft.chapter_names and (draft.subject_ids or draft.chapter_ids):
        try:
            subject_names, chapter_names = await services.planner.resolve_display_names(
                draft.subject_ids, draft.chapter_ids
            )
        except QuizError as e:
            logger.warning(f"Nao foi possivel resolver nomes de exibicao: {e}")
        else:
            draft = draft.model_copy(update={"subject_names": subject_names, "chapter_names": chapter_names})

    if not draft.title:
        draft = draft.model_copy(update={"title": ", ".join(draft.subject_names) or "Quiz"})

    return await services.manager.create_schedule(draft)


@router.post("/schedules/{schedule_id}/cancel", response_model=Schedule)
async def cancel_schedule(
    schedule_id: str,
    request: CancelScheduleRequest | None = None,
    services: QuizServices = Depends(get_services),
):
    """Cancela uma agenda ainda nao terminada."""
    try:
        return await services.manager.cancel_schedule(schedule_id, request.reason if request else None)
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.post("/schedules/weekly", response_model=list[Schedule])
async def plan_week(
    request: WeeklyPlanRequest | None = None,
    services: QuizServices = Depends(get_services),
):
    """Gera a agenda dos proximos dias com o LLM."""
    days_ahead = request.days_ahead if request else WeeklyPlanRequest().days_ahead
    try:
        return await services.planner.plan_week(days_ahead=days_ahead)
    except QuizError as e:
        logger.error(f"Planejamento semanal falhou: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e


# =============================================================================
# DISPARO MANUAL
# =============================================================================


async def _run_test_quiz(services: QuizServices, question_count: int) -> None:
    try:
        schedule = await services.planner.trigger_test_quiz(question_count)
    except Exception as e:
        logger.error(f"Quiz de teste falhou: {e}", exc_info=True)
        return
    if schedule is not None:
        logger.info(f"Quiz de teste {schedule.id} terminou como {schedule.status.value}")


@router.post("/trigger", status_code=202)
async def trigger_quiz(
    background_tasks: BackgroundTasks,
    request: TriggerQuizRequest | None = None,
    services: QuizServices = Depends(get_services),
):
    """Dispara um quiz de teste para o slot atual (em background)."""
    if not services.config.enabled:
        raise HTTPException(
            status_code=503,
            detail=f"Quiz desabilitado, faltando: {', '.join(services.config.validate())}",
        )

    question_count = request.question_count if request else TriggerQuizRequest().question_count
    background_tasks.add_task(_run_test_quiz, services, question_count)
    return {"status": "accepted", "question_count": question_count}
