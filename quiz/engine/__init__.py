"""Quiz Engines - Selecao, qualidade, aquisicao, agendas, entrega e disparos."""

from .acquisition import AcquisitionLoop, acquire_questions
from .dedup_engine import QuestionDeduplicationEngine, has_duplicate_keys
from .delivery import DeliverySequencer, detect_language_mode, resolve_correct_index, truncate
from .planner import SchedulePlanner, build_subject_summaries
from .quality_gate import QualityGate
from .schedule_manager import ScheduleManager
from .selector import QuestionSelector, split_by_ratio
from .trigger import Firing, FiringKind, SchedulerTrigger, next_firing, utc_cron_expression

__all__ = [
    "QuestionDeduplicationEngine",
    "has_duplicate_keys",
    "QuestionSelector",
    "split_by_ratio",
    "QualityGate",
    "AcquisitionLoop",
    "acquire_questions",
    "ScheduleManager",
    "DeliverySequencer",
    "resolve_correct_index",
    "detect_language_mode",
    "truncate",
    "SchedulePlanner",
    "build_subject_summaries",
    "SchedulerTrigger",
    "Firing",
    "FiringKind",
    "next_firing",
    "utc_cron_expression",
]
