"""Quiz Config - Configuracao centralizada lida de variaveis de ambiente."""

import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo

from .errors import ConfigurationError
from .models.enums import TimeSlot
from .models.schemas import DifficultyRatio


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} deve ser inteiro, recebido {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} deve ser numerico, recebido {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# -----------------------------------------------------------------------------
# Secoes
# -----------------------------------------------------------------------------


@dataclass
class AstraConfig:
    """Conexao com o banco de questoes (Astra DB Data API)."""

    endpoint: str = ""
    token: str = ""
    namespace: str = "default_keyspace"
    questions_collection: str = "questionsbank"
    subjects_collection: str = "subjects"
    chapters_collection: str = "chapters"

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.token)


@dataclass
class TelegramConfig:
    """Bot e canal que recebem as enquetes."""

    bot_token: str = ""
    channel_id: str = ""
    api_url: str = "https://api.telegram.org"

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.channel_id)


@dataclass
class LLMConfig:
    """LLM usado para checagem de qualidade e planejamento."""

    api_key: str = ""
    api_url: str = "https://api.mistral.ai/v1/chat/completions"
    quality_model: str = "mistral-large-latest"
    schedule_model: str = "mistral-large-latest"
    max_tokens: int = 2000


@dataclass
class TimingConfig:
    """Horarios e pausas da entrega (pausas em segundos)."""

    timezone: str = "Asia/Kolkata"
    quiz_times: tuple[TimeSlot, ...] = (TimeSlot.MORNING, TimeSlot.EVENING)
    notification_minutes_before: int = 30
    delay_between_languages: float = 3.0
    question_interval: float = 3.0
    start_delay: float = 3.0
    completion_delay: float = 3.0

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def immediate(cls, timezone: str = "Asia/Kolkata") -> "TimingConfig":
        """Configuracao sem pausas (testes e disparos manuais)."""
        return cls(
            timezone=timezone,
            delay_between_languages=0.0,
            question_interval=0.0,
            start_delay=0.0,
            completion_delay=0.0,
        )


@dataclass
class SelectionConfig:
    """Parametros de selecao e aquisicao de questoes."""

    default_question_count: int = 20
    difficulty_ratio: DifficultyRatio = field(default_factory=DifficultyRatio)
    avoid_recent_days: int = 7
    used_retention_days: int = 30
    fetch_multiplier: int = 5
    fetch_cap: int = 500
    max_attempts: int = 3
    overfetch_factor: float = 1.5
    max_auto_chapters: int = 3
    fail_open_on_oracle_error: bool = True


@dataclass
class StorageConfig:
    """KV store persistente (AgentFS)."""

    agentfs_id: str = "quiz-bot"
    schedules_key: str = "quiz_schedules"
    used_questions_key: str = "quiz_used_questions"


# -----------------------------------------------------------------------------
# Configuracao completa
# -----------------------------------------------------------------------------


@dataclass
class QuizConfig:
    """Configuracao completa do modulo de quiz."""

    astra: AstraConfig = field(default_factory=AstraConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    http_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "QuizConfig":
        """Carrega configuracao de variaveis de ambiente."""
        timezone = os.getenv("QUIZ_TIMEZONE", "Asia/Kolkata")
        try:
            ZoneInfo(timezone)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"QUIZ_TIMEZONE invalido: {timezone!r}") from e

        return cls(
            astra=AstraConfig(
                endpoint=os.getenv("ASTRA_DB_ENDPOINT", ""),
                token=os.getenv("ASTRA_DB_TOKEN", ""),
                namespace=os.getenv("ASTRA_DB_NAMESPACE", "default_keyspace"),
                questions_collection=os.getenv("ASTRA_DB_COLLECTION_QUESTIONS", "questionsbank"),
                subjects_collection=os.getenv("ASTRA_DB_COLLECTION_SUBJECTS", "subjects"),
                chapters_collection=os.getenv("ASTRA_DB_COLLECTION_CHAPTERS", "chapters"),
            ),
            telegram=TelegramConfig(
                bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
                # Canal proprio do quiz, senao o canal principal
                channel_id=os.getenv("QUIZ_CHANNEL_ID") or os.getenv("TELEGRAM_CHANNEL_ID", ""),
            ),
            llm=LLMConfig(
                api_key=os.getenv("MISTRAL_API_KEY", ""),
                api_url=os.getenv("MISTRAL_API_URL", "https://api.mistral.ai/v1/chat/completions"),
                quality_model=os.getenv("QUIZ_QUALITY_MODEL", "mistral-large-latest"),
                schedule_model=os.getenv("QUIZ_SCHEDULE_MODEL", "mistral-large-latest"),
                max_tokens=_env_int("QUIZ_LLM_MAX_TOKENS", 2000),
            ),
            timing=TimingConfig(
                timezone=timezone,
                # Valores em ms
                question_interval=_env_int("QUIZ_QUESTION_INTERVAL", 3000) / 1000,
                delay_between_languages=_env_int("QUIZ_LANGUAGE_DELAY", 3000) / 1000,
            ),
            selection=SelectionConfig(
                default_question_count=_env_int("QUIZ_DEFAULT_COUNT", 20),
                avoid_recent_days=_env_int("QUIZ_AVOID_RECENT_DAYS", 7),
                fail_open_on_oracle_error=_env_bool("QUIZ_FAIL_OPEN_ON_ORACLE_ERROR", True),
            ),
            storage=StorageConfig(
                agentfs_id=os.getenv("AGENTFS_ID", "quiz-bot"),
            ),
            http_timeout=_env_float("HTTP_TIMEOUT", 30.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> list[str]:
        """Retorna a lista de configuracoes obrigatorias ausentes."""
        missing = []
        if not self.astra.endpoint:
            missing.append("ASTRA_DB_ENDPOINT")
        if not self.astra.token:
            missing.append("ASTRA_DB_TOKEN")
        if not self.telegram.bot_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.telegram.channel_id:
            missing.append("QUIZ_CHANNEL_ID")
        return missing

    @property
    def enabled(self) -> bool:
        """Quiz so roda com banco e canal configurados."""
        return self.astra.configured and self.telegram.configured

    def status(self) -> dict:
        """Status resumido para logs e endpoint /quiz/status."""
        return {
            "astra_configured": self.astra.configured,
            "channel_configured": bool(self.telegram.channel_id),
            "channel_id": self.telegram.channel_id,
            "llm_configured": bool(self.llm.api_key),
            "timezone": self.timing.timezone,
            "quiz_times": [slot.value for slot in self.timing.quiz_times],
        }
