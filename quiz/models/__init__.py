"""Quiz Models - Enums, Schemas e State."""

from .enums import LanguageMode, QuizDifficulty, ScheduleStatus, TimeSlot
from .schemas import (
    CancelScheduleRequest,
    Chapter,
    ChapterSummary,
    DeliveryResult,
    DifficultyRatio,
    PlannedQuiz,
    PollMessage,
    QualityCheckInput,
    QualityVerdict,
    Question,
    QuestionSelectionOptions,
    QuizStatusResponse,
    Schedule,
    ScheduleDraft,
    Subject,
    SubjectSelection,
    SubjectSummary,
    TriggerQuizRequest,
    UsedQuestionRecord,
    WeeklyPlanRequest,
)
from .state import SCHEDULE_TRANSITIONS, AcquisitionResult, can_transition, ensure_transition

__all__ = [
    # Enums
    "QuizDifficulty",
    "ScheduleStatus",
    "TimeSlot",
    "LanguageMode",
    # Documentos
    "Question",
    "Subject",
    "Chapter",
    # Selecao e qualidade
    "DifficultyRatio",
    "QuestionSelectionOptions",
    "QualityCheckInput",
    "QualityVerdict",
    # Agendas
    "ScheduleDraft",
    "Schedule",
    "UsedQuestionRecord",
    # Entrega
    "PollMessage",
    "DeliveryResult",
    # Planejamento
    "ChapterSummary",
    "SubjectSummary",
    "PlannedQuiz",
    "SubjectSelection",
    # API
    "TriggerQuizRequest",
    "WeeklyPlanRequest",
    "CancelScheduleRequest",
    "QuizStatusResponse",
    # State
    "SCHEDULE_TRANSITIONS",
    "AcquisitionResult",
    "can_transition",
    "ensure_transition",
]
