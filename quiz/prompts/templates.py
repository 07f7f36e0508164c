"""Quiz Templates - Prompts do LLM e mensagens enviadas ao canal."""

import datetime as dt
import html

from ..models.schemas import QualityCheckInput, Schedule, SubjectSummary

# =============================================================================
# CHECAGEM DE QUALIDADE
# =============================================================================

QUALITY_CHECK_SYSTEM_PROMPT = """You are a quality checker for educational quiz questions. Your job is to review questions and identify any that should be removed from a quiz.

EVALUATE EACH QUESTION FOR:
1. Clarity - Is the question clear and understandable?
2. Completeness - Does the question have all necessary information?
3. Options - Are all options valid and distinct?
4. Similarity - Are any questions too similar to others in the batch?
5. Accuracy - Does the question make factual sense?

MARK FOR REMOVAL if:
- Question is incomplete or truncated
- Options are missing or don't make sense
- Question is identical or nearly identical to another in the batch
- Question contains obvious errors
- Question is too vague to answer

RESPOND WITH JSON ARRAY:
[
  {"id": "question_id", "approved": true},
  {"id": "question_id", "approved": false, "reason": "brief reason"}
]

Be lenient - only reject questions with significant issues. Most questions should pass."""


def build_quality_check_prompt(questions: list[QualityCheckInput]) -> str:
    """Monta o prompt de usuario com o lote de questoes (A, B, C... por alternativa)."""
    blocks = []
    for number, question in enumerate(questions, start=1):
        options = "\n".join(
            f"  {chr(65 + j)}) {option}" for j, option in enumerate(question.options)
        )
        blocks.append(f"[{number}] ID: {question.id}\nQ: {question.text}\n{options}")

    formatted = "\n\n".join(blocks)
    return (
        f"Review these {len(questions)} questions and identify any that should be removed:"
        f"\n\n{formatted}"
    )


# =============================================================================
# PLANEJAMENTO DE AGENDA
# =============================================================================

SCHEDULE_GENERATION_SYSTEM_PROMPT = """You are a quiz scheduler for an educational Telegram channel. Your job is to create a weekly quiz schedule that covers various subjects and chapters.

GUIDELINES:
1. Balance coverage across all subjects
2. Mix single-chapter and multi-chapter quizzes
3. Gradually increase difficulty through the week
4. Create engaging titles for each quiz
5. Quizzes are at 08:00 and 20:00 local time

RESPOND WITH JSON ARRAY:
[
  {
    "date": "YYYY-MM-DD",
    "time": "08:00" or "20:00",
    "subjectIds": ["id1", "id2"],
    "chapterIds": ["id1", "id2"],
    "questionCount": 20,
    "title": "Quiz Title"
  }
]"""

SUBJECT_SELECTION_SYSTEM_PROMPT = """You are an educational quiz planner. Your job is to select the best subjects and chapters for today's quiz.

GUIDELINES:
1. Choose subjects that students need to practice
2. Mix easy and challenging chapters
3. Create an engaging quiz title
4. Consider question availability (pick chapters with more questions)

RESPOND WITH JSON:
{
    "subjectIds": ["id1"],
    "chapterIds": ["id1", "id2"],
    "title": "Engaging Quiz Title",
    "reasoning": "Brief explanation of why you chose these"
}"""


def _format_subjects(subjects: list[SubjectSummary]) -> str:
    blocks = []
    for subject in subjects:
        chapters = "\n".join(
            f"    - {c.name} ({c.question_count} questions) [ID: {c.id}]" for c in subject.chapters
        )
        blocks.append(
            f"- {subject.name} ({subject.total_questions} questions) [ID: {subject.id}]\n{chapters}"
        )
    return "\n\n".join(blocks)


def build_schedule_generation_prompt(
    subjects: list[SubjectSummary], start: dt.date, days_ahead: int
) -> str:
    dates = [(start + dt.timedelta(days=i)).isoformat() for i in range(days_ahead)]

    return f"""Create a quiz schedule for the next {days_ahead} days.

Available dates: {', '.join(dates)}
Times: 08:00 (morning) and 20:00 (evening)

SUBJECTS AND CHAPTERS:
{_format_subjects(subjects)}

Create 2 quizzes per day (morning and evening). Vary the difficulty and mix subjects/chapters appropriately."""


def build_subject_selection_prompt(subjects: list[SubjectSummary], question_count: int) -> str:
    return f"""Select subjects and chapters for today's quiz.

REQUIREMENTS:
- Need {question_count} questions total
- Pick chapters that have enough questions
- Create an interesting mix

AVAILABLE SUBJECTS AND CHAPTERS:
{_format_subjects(subjects)}

Choose wisely and provide an engaging quiz title!"""


# =============================================================================
# MENSAGENS DO CANAL (HTML do Telegram)
# =============================================================================

# Marcadores de materias de idioma (latino e devanagari)
HINDI_MARKERS = ("hindi", "हिंदी", "हिन्दी")
ENGLISH_MARKERS = ("english", "अंग्रेजी", "अंग्रेज़ी")

HINDI_QUESTION_HEADER = "प्रश्न {index}/{total}"
ENGLISH_QUESTION_HEADER = "Question {index}/{total}"


def _subjects_text(schedule: Schedule) -> str:
    return html.escape(", ".join(schedule.subject_names) or "Mixed")


def _chapters_text(schedule: Schedule) -> str:
    return html.escape(", ".join(schedule.chapter_names) if schedule.chapter_names else "All chapters")


def format_start_message(schedule: Schedule, question_count: int, format_label: str) -> str:
    """Anuncio de inicio da sessao."""
    return f"""🎯 <b>QUIZ STARTING NOW!</b> 🎯

📚 <b>Subject:</b> {_subjects_text(schedule)}
📖 <b>Chapters:</b> {_chapters_text(schedule)}
❓ <b>Questions:</b> {question_count}
🌐 <b>Format:</b> {format_label}

📝 Each question will appear as a poll.
✅ Tap an option to answer and see the explanation!

<i>Good luck! 🍀</i>"""


def format_complete_message(schedule: Schedule, questions_sent: int) -> str:
    """Resumo ao final da sessao."""
    return f"""🎉 <b>QUIZ COMPLETE!</b> 🎉

✅ <b>Questions:</b> {questions_sent} completed
📚 <b>Topic:</b> {html.escape(schedule.title)}

📊 Check your answers above!
💡 Tap any poll to see the explanation.

<i>See you at the next quiz! 📖</i>"""


def format_notification_message(schedule: Schedule, minutes_before: int, timezone_label: str) -> str:
    """Aviso enviado antes do quiz."""
    return f"""📚 <b>QUIZ STARTING IN {minutes_before} MINUTES!</b> 📚

📅 <b>Time:</b> {schedule.time.display} {html.escape(timezone_label)}
📖 <b>Subject:</b> {_subjects_text(schedule)}
📝 <b>Chapters:</b> {_chapters_text(schedule)}
❓ <b>Questions:</b> {schedule.question_count}

<i>Get ready! 🚀</i>"""
