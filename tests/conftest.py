# =============================================================================
# CONFTEST - Fixtures compartilhadas para todos os testes
# =============================================================================
# Fakes do banco de questoes, gateway e oraculo; stores em memoria
# =============================================================================

import datetime as dt
import random
from unittest.mock import AsyncMock

import pytest

from quiz.config import SelectionConfig, TimingConfig
from quiz.errors import GatewayError, QuestionRepositoryError
from quiz.models.schemas import Chapter, Question, Subject
from quiz.storage import InMemoryKeyValueStore, ScheduleStore, UsedQuestionStore

# 2025-01-10 06:30 IST
FIXED_NOW = dt.datetime(2025, 1, 10, 1, 0, tzinfo=dt.timezone.utc)


# =============================================================================
# FAKES
# =============================================================================


class FakeQuestionRepository:
    """Banco de questoes em memoria com os mesmos filtros do Astra."""

    def __init__(self, questions=None, subjects=None, chapters=None, fail_after=None):
        self.questions = list(questions or [])
        self.subjects = list(subjects or [])
        self.chapters = list(chapters or [])
        self.fail_after = fail_after
        self.find_calls = []

    async def find_questions(self, subject_ids=None, chapter_ids=None, verified=True, limit=500):
        self.find_calls.append(
            {"subject_ids": subject_ids, "chapter_ids": chapter_ids, "verified": verified, "limit": limit}
        )
        if self.fail_after is not None and len(self.find_calls) > self.fail_after:
            raise QuestionRepositoryError("timeout")
        found = [
            q
            for q in self.questions
            if q.verified == verified
            and (not subject_ids or q.subject_id in subject_ids)
            and (not chapter_ids or q.chapter_id in chapter_ids)
        ]
        return found[:limit]

    async def list_subjects(self):
        return [s for s in self.subjects if s.is_active]

    async def list_chapters(self, subject_id=None):
        return [c for c in self.chapters if c.is_active and (subject_id is None or c.subject_id == subject_id)]


class FakeGateway:
    """Gateway que registra mensagens e enquetes enviadas."""

    def __init__(self, fail_polls_containing=None, fail_messages=False):
        self.messages = []
        self.polls = []
        self.fail_polls_containing = fail_polls_containing
        self.fail_messages = fail_messages

    async def send_message(self, text):
        if self.fail_messages:
            raise GatewayError("gateway fora do ar")
        self.messages.append(text)
        return {"message_id": len(self.messages)}

    async def send_poll(self, poll):
        if self.fail_polls_containing and self.fail_polls_containing in poll.question:
            raise GatewayError("Bad Request: poll rejected")
        self.polls.append(poll)
        return {"message_id": 1000 + len(self.polls)}


# =============================================================================
# FIXTURES DE DADOS
# =============================================================================


@pytest.fixture
def make_question():
    """Factory de questoes bilingues."""

    def _make(
        question_id,
        difficulty="MEDIUM",
        dedupe_key=None,
        subject_id="hist",
        chapter_id="hist-1",
        correct_answer="A",
        verified=True,
        **overrides,
    ):
        data = {
            "_id": question_id,
            "hindiText": f"प्रश्न {question_id}",
            "englishText": f"Question text {question_id}",
            "optionsHindi": ["विकल्प क", "विकल्प ख", "विकल्प ग", "विकल्प घ"],
            "optionsEnglish": ["Option A", "Option B", "Option C", "Option D"],
            "correctAnswer": correct_answer,
            "explanationHindi": "व्याख्या",
            "explanationEnglish": "**Because** it is _correct_",
            "subjectId": subject_id,
            "subjectName": "History",
            "chapterId": chapter_id,
            "chapterName": "Ancient India",
            "difficultyLevel": difficulty,
            "dedupeKey": dedupe_key,
            "verified": verified,
        }
        data.update(overrides)
        return Question.model_validate(data)

    return _make


@pytest.fixture
def question_pool(make_question):
    """50 questoes verificadas: 15 EASY, 25 MEDIUM, 10 HARD em 5 capitulos."""
    pool = []
    for prefix, count, difficulty in (("e", 15, "EASY"), ("m", 25, "MEDIUM"), ("h", 10, "HARD")):
        for i in range(count):
            pool.append(make_question(f"{prefix}{i}", difficulty, chapter_id=f"hist-{len(pool) % 5 + 1}"))
    return pool


@pytest.fixture
def subjects():
    return [
        Subject.model_validate({"_id": "hist", "name": "History", "totalQuestions": 50, "isActive": True}),
        Subject.model_validate({"_id": "geo", "name": "Geography", "totalQuestions": 0, "isActive": False}),
    ]


@pytest.fixture
def chapters():
    return [
        Chapter.model_validate({"_id": f"hist-{i}", "name": f"Chapter {i}", "subjectId": "hist", "totalQuestions": 10})
        for i in range(1, 6)
    ]


@pytest.fixture
def repository(question_pool, subjects, chapters):
    return FakeQuestionRepository(question_pool, subjects, chapters)


@pytest.fixture
def make_repository(subjects, chapters):
    """Factory de banco fake com um pool proprio de questoes."""

    def _make(questions, fail_after=None):
        return FakeQuestionRepository(questions, subjects, chapters, fail_after=fail_after)

    return _make


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_gateway():
    """Factory de gateway fake com falhas configuraveis."""
    return FakeGateway


# =============================================================================
# FIXTURES DE STORES E CONFIG
# =============================================================================


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def schedule_store(kv):
    return ScheduleStore(kv)


@pytest.fixture
def used_store(kv):
    return UsedQuestionStore(kv)


@pytest.fixture
def immediate_timing():
    """Timing sem pausas."""
    return TimingConfig.immediate()


@pytest.fixture
def selection_config():
    return SelectionConfig()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def approving_oracle():
    """Oraculo que aprova tudo (lista vazia = sem vereditos)."""
    oracle = AsyncMock()
    oracle.review = AsyncMock(return_value=[])
    return oracle


# =============================================================================
# FIXTURES DE ENGINES
# =============================================================================


@pytest.fixture
def build_manager(repository, gateway, schedule_store, used_store, immediate_timing, selection_config, rng, fixed_clock):
    """Factory de ScheduleManager completo (oraculo configuravel)."""
    from quiz.engine import AcquisitionLoop, DeliverySequencer, QualityGate, QuestionSelector, ScheduleManager

    def _build(oracle, repo=None, gw=None):
        repo = repo or repository
        selector = QuestionSelector(repo, used_store, selection_config, rng=rng)
        gate = QualityGate(oracle, fail_open=selection_config.fail_open_on_oracle_error)
        acquisition = AcquisitionLoop(selector, gate, selection_config)
        sequencer = DeliverySequencer(gw or gateway, immediate_timing)
        return ScheduleManager(
            schedule_store,
            used_store,
            repo,
            acquisition,
            sequencer,
            selection=selection_config,
            timing=immediate_timing,
            rng=rng,
            clock=fixed_clock,
        )

    return _build
