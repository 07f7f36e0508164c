"""Quiz Schemas - Modelos Pydantic do banco de questoes, agendas e entrega."""

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import QuizDifficulty, ScheduleStatus, TimeSlot

# =============================================================================
# DOCUMENTOS DO BANCO (Astra DB, chaves camelCase)
# =============================================================================


class AstraDocument(BaseModel):
    """Base para documentos lidos do Astra DB (somente leitura)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class Question(AstraDocument):
    """Questao bilingue do banco de questoes."""

    id: str = Field(..., alias="_id", description="ID do documento")
    question_number: int | None = Field(default=None, description="Numero original da questao")
    hindi_text: str = Field(default="", description="Enunciado em hindi")
    english_text: str = Field(default="", description="Enunciado em ingles")
    options_hindi: list[str] = Field(default_factory=list, description="Alternativas em hindi")
    options_english: list[str] = Field(default_factory=list, description="Alternativas em ingles")
    correct_answer: str = Field(default="", description="Letra (A-D) ou texto da alternativa correta")
    explanation_hindi: str = Field(default="", description="Explicacao em hindi")
    explanation_english: str = Field(default="", description="Explicacao em ingles")
    subject_id: str = ""
    subject_name: str = ""
    chapter_id: str = ""
    chapter_name: str = ""
    difficulty_level: QuizDifficulty | None = Field(default=None, description="EASY, MEDIUM, HARD ou vazio")
    dedupe_key: str | None = Field(default=None, description="Fingerprint de conteudo para deduplicacao")
    verified: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value):
        # Rotulos desconhecidos contam como "sem dificuldade"
        if value is None or isinstance(value, QuizDifficulty):
            return value
        label = str(value).strip().upper()
        if label in QuizDifficulty.__members__:
            return QuizDifficulty[label]
        return None

    def to_quality_input(self) -> "QualityCheckInput":
        """Projecao minima (ingles) enviada ao oraculo de qualidade."""
        return QualityCheckInput(id=self.id, text=self.english_text, options=list(self.options_english))


class Subject(AstraDocument):
    """Materia do catalogo."""

    id: str = Field(..., alias="_id")
    name: str
    description: str = ""
    total_questions: int = 0
    total_chapters: int = 0
    is_active: bool = True


class Chapter(AstraDocument):
    """Capitulo de uma materia."""

    id: str = Field(..., alias="_id")
    name: str
    subject_id: str
    subject_name: str = ""
    order: int | None = None
    total_questions: int = 0
    is_active: bool = True


# =============================================================================
# SELECAO E QUALIDADE
# =============================================================================


class DifficultyRatio(BaseModel):
    """Distribuicao alvo de dificuldade (fracoes de N)."""

    model_config = ConfigDict(populate_by_name=True)

    easy: float = Field(default=0.3, ge=0, le=1, alias="EASY")
    medium: float = Field(default=0.5, ge=0, le=1, alias="MEDIUM")
    hard: float = Field(default=0.2, ge=0, le=1, alias="HARD")

    @model_validator(mode="after")
    def _check_total(self) -> "DifficultyRatio":
        total = self.easy + self.medium + self.hard
        if total > 1.0 + 1e-6:
            raise ValueError(f"Distribuicao de dificuldade soma {total:.2f} (maximo 1.0)")
        return self


class QuestionSelectionOptions(BaseModel):
    """Parametros de uma requisicao ao seletor."""

    subject_ids: list[str] = Field(default_factory=list)
    chapter_ids: list[str] = Field(default_factory=list)
    count: int = Field(..., ge=1, description="Numero de questoes desejado (N)")
    difficulty_ratio: DifficultyRatio | None = Field(
        default=None, description="None = distribuicao padrao da configuracao"
    )
    exclude_recent_days: int | None = Field(
        default=None, ge=0, description="None = janela padrao da configuracao"
    )


class QualityCheckInput(BaseModel):
    """Dados minimos enviados ao oraculo (ingles apenas, para economizar tokens)."""

    id: str
    text: str
    options: list[str]


class QualityVerdict(BaseModel):
    """Veredito do oraculo para uma questao."""

    id: str
    approved: bool = True
    reason: str | None = None


# =============================================================================
# AGENDAS
# =============================================================================


class ScheduleDraft(BaseModel):
    """Dados para criar uma agenda (status e timestamps sao definidos pelo manager)."""

    date: dt.date = Field(..., description="Data local (YYYY-MM-DD)")
    time: TimeSlot = Field(..., description="Slot: 08:00 ou 20:00")
    subject_ids: list[str] = Field(default_factory=list)
    chapter_ids: list[str] = Field(default_factory=list)
    subject_names: list[str] = Field(default_factory=list)
    chapter_names: list[str] = Field(default_factory=list)
    question_count: int = Field(default=20, ge=1, le=100)
    title: str = Field(default="", description="Titulo exibido")


class Schedule(ScheduleDraft):
    """Agenda persistida de uma sessao de quiz."""

    id: str
    status: ScheduleStatus = ScheduleStatus.SCHEDULED
    created_at: dt.datetime
    completed_at: dt.datetime | None = None
    questions_sent: int | None = Field(default=None, description="Questoes efetivamente enviadas")
    cancel_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def matches_slot(self, date: dt.date, time: TimeSlot) -> bool:
        return self.date == date and self.time == time


class UsedQuestionRecord(BaseModel):
    """Registro de uso de uma questao (log append-only)."""

    question_id: str
    schedule_id: str
    used_at: dt.datetime


# =============================================================================
# ENTREGA
# =============================================================================


class PollMessage(BaseModel):
    """Enquete do tipo quiz ja truncada para os limites da plataforma."""

    question: str = Field(..., max_length=300)
    options: list[str]
    type: Literal["quiz"] = "quiz"
    correct_option_id: int = Field(..., ge=0)
    explanation: str | None = Field(default=None, max_length=200)


class DeliveryResult(BaseModel):
    """Resultado de uma sessao de entrega."""

    success: bool
    questions_sent: int = 0
    sent_question_ids: list[str] = Field(default_factory=list)


# =============================================================================
# PLANEJAMENTO (entrada/saida do LLM)
# =============================================================================


class ChapterSummary(BaseModel):
    id: str
    name: str
    question_count: int = 0


class SubjectSummary(BaseModel):
    """Resumo de materia + capitulos enviado ao planejador."""

    id: str
    name: str
    total_questions: int = 0
    chapters: list[ChapterSummary] = Field(default_factory=list)


class PlannedQuiz(BaseModel):
    """Quiz sugerido pelo LLM na agenda semanal."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    date: dt.date
    time: TimeSlot
    subject_ids: list[str] = Field(default_factory=list)
    chapter_ids: list[str] = Field(default_factory=list)
    question_count: int = Field(default=20, ge=1, le=100)
    title: str = ""


class SubjectSelection(BaseModel):
    """Selecao de materias/capitulos feita pelo LLM para um quiz avulso."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    subject_ids: list[str] = Field(default_factory=list)
    chapter_ids: list[str] = Field(default_factory=list)
    title: str = ""
    reasoning: str = ""


# =============================================================================
# API ADMIN
# =============================================================================


class TriggerQuizRequest(BaseModel):
    """Request para disparar um quiz de teste imediatamente."""

    question_count: int = Field(default=20, ge=1, le=100, description="Numero de questoes")


class WeeklyPlanRequest(BaseModel):
    """Request para gerar a agenda dos proximos dias."""

    days_ahead: int = Field(default=7, ge=1, le=14)


class CancelScheduleRequest(BaseModel):
    reason: str | None = Field(default=None, description="Motivo do cancelamento")


class QuizStatusResponse(BaseModel):
    """Status do modulo de quiz."""

    enabled: bool
    astra_configured: bool
    channel_configured: bool
    channel_id: str
    timezone: str
    quiz_times: list[str]
    cron_utc: dict[str, str] = Field(default_factory=dict, description="Disparos equivalentes em UTC")
    missing_settings: list[str] = Field(default_factory=list)
