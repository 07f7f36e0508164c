"""Quiz Module - Agendamento e entrega de quizzes bilingues.

Arquitetura:
- models/: Enums, Schemas Pydantic, maquina de estados
- engine/: Selector, QualityGate, AcquisitionLoop, ScheduleManager,
  DeliverySequencer, SchedulePlanner, SchedulerTrigger
- clients/: Astra DB (banco de questoes) e Telegram (gateway)
- llm/: Cliente Mistral e oraculos de qualidade/planejamento
- storage/: Agendas e questoes usadas (AgentFS KV)
- prompts/: Prompts do LLM e mensagens do canal
- router.py: FastAPI endpoints
"""

from .config import QuizConfig
from .engine import (
    AcquisitionLoop,
    DeliverySequencer,
    QualityGate,
    QuestionSelector,
    SchedulePlanner,
    ScheduleManager,
    SchedulerTrigger,
    acquire_questions,
)
from .errors import QuizError
from .models import Question, QuizDifficulty, Schedule, ScheduleStatus, TimeSlot
from .storage import ScheduleStore, UsedQuestionStore

__all__ = [
    # Config
    "QuizConfig",
    "QuizError",
    # Models
    "QuizDifficulty",
    "ScheduleStatus",
    "TimeSlot",
    "Question",
    "Schedule",
    # Engines
    "QuestionSelector",
    "QualityGate",
    "AcquisitionLoop",
    "acquire_questions",
    "ScheduleManager",
    "DeliverySequencer",
    "SchedulePlanner",
    "SchedulerTrigger",
    # Storage
    "ScheduleStore",
    "UsedQuestionStore",
]
