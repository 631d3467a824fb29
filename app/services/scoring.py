"""
Deterministic scoring rules.

Nothing here touches the database: every function takes already-loaded
questions/answers (ORM rows or anything with the same attributes) and returns
plain values, so the rules can be unit tested on their own.
"""
from typing import Iterable, List, Optional, Tuple

from app.core.constants import ACHIEVED_LEVEL_THRESHOLDS, QuestionTypeEnum, TierSchemeEnum
from app.schemas.exam_session import SectionScore

ScoreResult = Tuple[bool, int]


def normalize_text(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def score_mcq(question, answer) -> ScoreResult:
    correct_choice_id = next((c.id for c in question.choices if c.is_correct), None)
    is_correct = (
        correct_choice_id is not None
        and answer.selected_choice_id is not None
        and answer.selected_choice_id == correct_choice_id
    )
    return is_correct, (question.score_weight if is_correct else 0)


def score_short_text(question, answer) -> ScoreResult:
    expected = normalize_text(question.correct_text_answer)
    is_correct = bool(expected) and normalize_text(answer.text_answer) == expected
    return is_correct, (question.score_weight if is_correct else 0)


def score_answer(question, answer) -> Optional[ScoreResult]:
    """Score an objective answer. Essays return None; they are graded asynchronously."""
    if question.question_type == QuestionTypeEnum.MCQ:
        return score_mcq(question, answer)
    if question.question_type == QuestionTypeEnum.SHORT_TEXT:
        return score_short_text(question, answer)
    return None


def essay_points(ai_score: int, score_weight: int) -> int:
    """Convert a 0-100 essay grade to points, rounding halves up."""
    return (ai_score * score_weight * 2 + 100) // 200


def aggregate_sections(scored: Iterable[tuple]) -> List[SectionScore]:
    """
    Group answer scores by section type.

    `scored` yields (section, question, score) for every answered question.
    A section's maximum is its configured max_score when set, otherwise the
    sum of the weights of the questions answered in it.
    """
    by_type = {}
    section_max = {}
    order = []

    for section, question, score in scored:
        section_type = section.section_type
        if section_type not in by_type:
            by_type[section_type] = SectionScore(section_type=section_type)
            order.append(section_type)
        by_type[section_type].score += score or 0

        if section.id not in section_max:
            section_max[section.id] = [section_type, section.max_score, 0]
        section_max[section.id][2] += question.score_weight or 0

    for section_type, configured_max, answered_weight in section_max.values():
        by_type[section_type].max_score += configured_max if configured_max is not None else answered_weight

    return [by_type[section_type] for section_type in order]


def achieved_level(tier_scheme: TierSchemeEnum, total_score: Optional[int]) -> Optional[int]:
    """
    Look up the proficiency level for a total score.

    Returns None when no score is available yet or the score is below the
    lowest cut. Raises ValueError for a tier scheme without a threshold table.
    """
    try:
        thresholds = ACHIEVED_LEVEL_THRESHOLDS[TierSchemeEnum(tier_scheme)]
    except (KeyError, ValueError):
        raise ValueError(f"No achieved-level thresholds for tier scheme {tier_scheme!r}")

    if total_score is None:
        return None

    for minimum, level in thresholds:
        if total_score >= minimum:
            return level
    return None
