"""
Quiz Scheduler Server

FastAPI server for the scheduled quiz channel:
- Question bank on Astra DB
- Quality check and weekly planning via LLM
- Quiz polls delivered to a Telegram channel at 08:00 and 20:00
- Schedules and used-question log persisted in AgentFS
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import build_services
from quiz.config import QuizConfig
from quiz.router import router as quiz_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# =============================================================================
# FASTAPI APP
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage app lifecycle."""
    config = QuizConfig.from_env()
    configure_logging(config.log_level)
    logger.info(f"Iniciando Quiz Scheduler: {config.status()}")

    services = await build_services(config)
    app.state.quiz = services

    missing = config.validate()
    if missing:
        logger.warning(f"Quiz desabilitado, configuracoes ausentes: {', '.join(missing)}")
    elif await services.repository.ping():
        stats = await services.repository.collection_stats()
        logger.info(f"Banco de questoes: {stats}")
        services.trigger.start()
    else:
        logger.error("Astra DB inacessivel, scheduler nao iniciado")

    yield

    await services.close()
    logger.info("Quiz Scheduler encerrado")


app = FastAPI(
    title="Quiz Scheduler",
    description="Scheduled bilingual quiz delivery for Telegram channels",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8001",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quiz_router)


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================


@app.get("/")
async def root():
    """Health check."""
    return {"status": "ok", "message": "Quiz Scheduler"}


@app.get("/health")
async def health_check():
    """Detailed health check."""
    services = getattr(app.state, "quiz", None)
    if services is None:
        return {"status": "starting"}

    return {
        "status": "healthy",
        "quiz_enabled": services.config.enabled,
        "scheduler_running": services.trigger.running,
        "next_firing": services.trigger.next_firing().at.isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
