"""Quiz LLM - Cliente de chat e oraculos de qualidade/planejamento."""

from .client import MistralChatClient, extract_json
from .oracle import LLMQualityOracle, LLMSchedulePlanner

__all__ = ["MistralChatClient", "extract_json", "LLMQualityOracle", "LLMSchedulePlanner"]
