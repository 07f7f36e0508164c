# =============================================================================
# CONFTEST - Pytest Fixtures Globais
# =============================================================================
# Ambiente isolado: nenhuma credencial real chega aos testes
# =============================================================================

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Adicionar root ao path
sys.path.insert(0, str(Path(__file__).parent))


# =============================================================================
# FIXTURES DE AMBIENTE
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_env():
    """Configura variaveis de ambiente para testes."""
    env_vars = {
        "ASTRA_DB_ENDPOINT": "https://db-test.apps.astra.datastax.com",
        "ASTRA_DB_TOKEN": "AstraCS:test-token",
        "TELEGRAM_BOT_TOKEN": "123456:test-bot-token",
        "QUIZ_CHANNEL_ID": "@quiz_test_channel",
        "MISTRAL_API_KEY": "test-mistral-key",
        "QUIZ_TIMEZONE": "Asia/Kolkata",
        "LOG_LEVEL": "ERROR",
    }
    with patch.dict(os.environ, env_vars):
        yield


@pytest.fixture
def clean_env():
    """Limpa variaveis de ambiente para testes isolados."""
    with patch.dict(os.environ, {}, clear=True):
        yield


# =============================================================================
# FIXTURES DE MOCK - AGENTFS
# =============================================================================


@pytest.fixture
def mock_agentfs():
    """Mock do AgentFS com KV vazio."""
    mock = MagicMock()
    mock.kv.get = AsyncMock(return_value=None)
    mock.kv.set = AsyncMock(return_value=None)
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_agentfs_with_data():
    """Mock do AgentFS com KV em dicionario."""
    mock = MagicMock()
    _storage = {}

    async def mock_get(key):
        return _storage.get(key)

    async def mock_set(key, value):
        _storage[key] = value

    mock.kv = AsyncMock()
    mock.kv.get = mock_get
    mock.kv.set = mock_set
    mock._storage = _storage
    mock.close = AsyncMock()

    return mock


# =============================================================================
# FIXTURES DE LOGS
# =============================================================================


@pytest.fixture
def capture_logs(caplog):
    """Captura logs do modulo de quiz em nivel DEBUG."""
    import logging

    caplog.set_level(logging.DEBUG, logger="quiz")
    return caplog
