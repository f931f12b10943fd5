"""
Feedback loop: turn user feedback on a learned pattern into a confidence
adjustment. The feedback event is always recorded, even when the pattern
update that follows it fails.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..logging_config import get_logger
from ..models import LearningPattern, PatternFeedback
from ..models.pattern import MAX_CONFIDENCE, MIN_CONFIDENCE
from ..responses import clamp

logger = get_logger("feedback")

FEEDBACK_TYPES = ("positive", "negative", "correction")

POSITIVE_STEP = 0.1
NEGATIVE_STEP = 0.15
CORRECTION_STEP = 0.05
POSITIVE_MIN_SCORE = 4


@dataclass
class FeedbackOutcome:
    feedback: PatternFeedback
    pattern_updated: bool
    confidence: float


def clamp_confidence(value: float) -> float:
    return round(clamp(value, MIN_CONFIDENCE, MAX_CONFIDENCE), 4)


def adjust_confidence(
    confidence: float,
    feedback_type: str,
    feedback_score: Optional[int] = None,
    corrected_response: Optional[str] = None,
) -> Tuple[Optional[float], Optional[str]]:
    """
    Return ``(new_confidence, new_response)`` for one feedback event, or
    ``(None, None)`` when the event does not change the pattern.
    """
    if feedback_type == "positive" and feedback_score is not None and feedback_score >= POSITIVE_MIN_SCORE:
        return clamp_confidence(confidence + POSITIVE_STEP), None

    if feedback_type == "negative":
        return clamp_confidence(confidence - NEGATIVE_STEP), None

    if feedback_type == "correction" and corrected_response and corrected_response.strip():
        return clamp_confidence(confidence + CORRECTION_STEP), corrected_response.strip()

    return None, None


def apply_feedback(
    db: Session,
    user_id: int,
    pattern: LearningPattern,
    feedback_type: str,
    feedback_score: Optional[int] = None,
    original_response: Optional[str] = None,
    corrected_response: Optional[str] = None,
) -> FeedbackOutcome:
    """Record the event, then adjust the pattern in a second transaction"""
    event = PatternFeedback(
        user_id=user_id,
        pattern_id=pattern.id,
        feedback_type=feedback_type,
        feedback_score=feedback_score,
        original_response=original_response,
        corrected_response=corrected_response,
    )
    db.add(event)
    db.commit()
    db.refresh(event)

    new_confidence, new_response = adjust_confidence(
        pattern.confidence, feedback_type, feedback_score, corrected_response
    )
    if new_confidence is None:
        return FeedbackOutcome(feedback=event, pattern_updated=False, confidence=pattern.confidence)

    old_confidence = pattern.confidence
    try:
        pattern.confidence = new_confidence
        if new_response is not None:
            pattern.response_pattern = new_response
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Pattern update after feedback failed", error=e, pattern_id=pattern.id, feedback_id=event.id)
        return FeedbackOutcome(feedback=event, pattern_updated=False, confidence=old_confidence)

    logger.info(
        "Pattern confidence adjusted",
        pattern_id=pattern.id,
        feedback_type=feedback_type,
        confidence=new_confidence,
    )
    return FeedbackOutcome(feedback=event, pattern_updated=True, confidence=new_confidence)
