"""Quiz Errors - Hierarquia de excecoes do modulo de quiz."""


class QuizError(Exception):
    """Erro base do modulo de quiz."""


class ConfigurationError(QuizError):
    """Configuracao obrigatoria ausente ou invalida."""


class QuestionRepositoryError(QuizError):
    """Falha ao consultar o banco de questoes."""


class LLMClientError(QuizError):
    """Falha na chamada ao LLM ou resposta ilegivel."""


class QualityOracleError(QuizError):
    """Oraculo de qualidade indisponivel ou com resposta malformada."""


class GatewayError(QuizError):
    """Falha ao enviar mensagem/enquete pelo gateway de mensagens."""

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ScheduleNotFoundError(QuizError):
    """Agenda inexistente."""


class InvalidTransitionError(QuizError):
    """Transicao de status nao permitida pela maquina de estados."""
