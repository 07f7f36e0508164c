"""Quiz Enums - Dificuldade, status de agenda, slots e idioma."""

from enum import Enum


class QuizDifficulty(str, Enum):
    """Niveis de dificuldade das questoes (como gravados no banco)."""

    EASY = "EASY"  # 30% - Conceitos basicos
    MEDIUM = "MEDIUM"  # 50% - Regras e aplicacao
    HARD = "HARD"  # 20% - Nuances e detalhes complexos


class ScheduleStatus(str, Enum):
    """Ciclo de vida de uma agenda de quiz."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED)


class TimeSlot(str, Enum):
    """Horarios fixos diarios do quiz (hora local de referencia)."""

    MORNING = "08:00"
    EVENING = "20:00"

    @property
    def hour(self) -> int:
        return int(self.value.split(":")[0])

    @property
    def minute(self) -> int:
        return int(self.value.split(":")[1])

    @property
    def display(self) -> str:
        """Horario em formato 12h para mensagens (ex: '8:00 PM')."""
        suffix = "AM" if self.hour < 12 else "PM"
        hour = self.hour % 12 or 12
        return f"{hour}:{self.minute:02d} {suffix}"


class LanguageMode(str, Enum):
    """Idioma(s) em que uma sessao e entregue."""

    HINDI = "hindi"
    ENGLISH = "english"
    BILINGUAL = "bilingual"
