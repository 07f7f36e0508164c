"""Quiz Clients - Banco de questoes (Astra DB) e gateway de mensagens (Telegram)."""

from .astra_client import AstraQuestionRepository
from .telegram_client import TelegramGateway

__all__ = ["AstraQuestionRepository", "TelegramGateway"]
