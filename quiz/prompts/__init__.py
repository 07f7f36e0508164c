"""Quiz Prompts - Prompts do LLM e templates de mensagens."""

from .templates import (
    ENGLISH_MARKERS,
    HINDI_MARKERS,
    QUALITY_CHECK_SYSTEM_PROMPT,
    SCHEDULE_GENERATION_SYSTEM_PROMPT,
    SUBJECT_SELECTION_SYSTEM_PROMPT,
    build_quality_check_prompt,
    build_schedule_generation_prompt,
    build_subject_selection_prompt,
    format_complete_message,
    format_notification_message,
    format_start_message,
)

__all__ = [
    "QUALITY_CHECK_SYSTEM_PROMPT",
    "SCHEDULE_GENERATION_SYSTEM_PROMPT",
    "SUBJECT_SELECTION_SYSTEM_PROMPT",
    "HINDI_MARKERS",
    "ENGLISH_MARKERS",
    "build_quality_check_prompt",
    "build_schedule_generation_prompt",
    "build_subject_selection_prompt",
    "format_start_message",
    "format_complete_message",
    "format_notification_message",
]
