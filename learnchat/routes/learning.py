"""
Learning routes: learned patterns, feedback on them, analytics and health.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from ..database import get_db
from ..models import LearningPattern, User
from ..auth import get_required_user
from ..logging_config import get_logger
from ..responses import NotFoundError, ValidationError, success
from ..schemas.pattern import PatternCreate, PatternUpdate, FeedbackCreate
from ..worker.feedback_loop import FEEDBACK_TYPES, apply_feedback, clamp_confidence
from ..worker.learning_stats import learning_analytics, learning_health
from ..worker.text_matching import classify

router = APIRouter(prefix="/api/learning", tags=["learning"])

logger = get_logger("learning")

SORT_COLUMNS = {
    "confidence": LearningPattern.confidence,
    "use_count": LearningPattern.use_count,
    "created_at": LearningPattern.created_at,
    "updated_at": LearningPattern.updated_at,
}


def _get_owned_pattern(db: Session, user_id: int, pattern_id: int) -> LearningPattern:
    pattern = db.query(LearningPattern).filter(
        LearningPattern.id == pattern_id,
        LearningPattern.user_id == user_id
    ).first()
    if not pattern:
        raise NotFoundError("Pattern", pattern_id)
    return pattern


# ============================================================
# PATTERNS
# ============================================================

@router.get("/patterns")
def list_patterns(
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    category: Optional[str] = None,
    min_confidence: float = 0,
    sort: str = "confidence",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """List learned patterns, sorted descending by the chosen column."""
    if sort not in SORT_COLUMNS:
        raise ValidationError(f"Invalid sort. Use one of: {', '.join(SORT_COLUMNS)}")

    query = db.query(LearningPattern).filter(
        LearningPattern.user_id == current_user.id,
        LearningPattern.confidence >= min_confidence,
    )
    if category:
        query = query.filter(LearningPattern.category == category)

    total = query.count()
    patterns = (
        query.order_by(SORT_COLUMNS[sort].desc(), LearningPattern.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return success(
        patterns=[pattern.to_dict() for pattern in patterns],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/patterns")
def create_pattern(
    data: PatternCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Teach a pattern directly."""
    if not data.input_pattern or not data.input_pattern.strip() or not data.response_pattern or not data.response_pattern.strip():
        raise ValidationError("Input and response patterns required")

    input_pattern = data.input_pattern.strip()
    pattern = LearningPattern(
        user_id=current_user.id,
        pattern_type="conversation",
        input_pattern=input_pattern,
        response_pattern=data.response_pattern.strip(),
        category=data.category or classify(input_pattern),
        confidence=clamp_confidence(data.confidence),
        use_count=1,
        learned_from="manual",
    )
    db.add(pattern)
    db.commit()
    db.refresh(pattern)

    logger.info("Pattern created", user_id=current_user.id, pattern_id=pattern.id)
    return success(pattern=pattern.to_dict())


@router.put("/patterns")
def update_pattern(
    data: PatternUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Adjust a pattern's confidence, response or category."""
    if data.id is None:
        raise ValidationError("Pattern ID required")

    pattern = _get_owned_pattern(db, current_user.id, data.id)

    if data.confidence is not None:
        pattern.confidence = clamp_confidence(data.confidence)
    if data.response_pattern is not None and data.response_pattern.strip():
        pattern.response_pattern = data.response_pattern.strip()
    if data.category is not None:
        pattern.category = data.category

    db.commit()
    db.refresh(pattern)
    return success(pattern=pattern.to_dict())


@router.delete("/patterns")
def delete_pattern(
    id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Forget a pattern."""
    if id is None:
        raise ValidationError("Pattern ID required")

    pattern = _get_owned_pattern(db, current_user.id, id)
    db.delete(pattern)
    db.commit()
    return success()


# ============================================================
# FEEDBACK
# ============================================================

@router.post("/feedback")
def submit_feedback(
    data: FeedbackCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Record feedback on a pattern and adjust its confidence."""
    if data.pattern_id is None or not data.feedback_type:
        raise ValidationError("Pattern ID and feedback type required")
    if data.feedback_type not in FEEDBACK_TYPES:
        raise ValidationError(f"Invalid feedback type. Use one of: {', '.join(FEEDBACK_TYPES)}")

    pattern = _get_owned_pattern(db, current_user.id, data.pattern_id)

    outcome = apply_feedback(
        db,
        user_id=current_user.id,
        pattern=pattern,
        feedback_type=data.feedback_type,
        feedback_score=data.feedback_score,
        original_response=data.original_response,
        corrected_response=data.corrected_response,
    )

    return {
        "success": True,
        "feedback": outcome.feedback.to_dict(),
        "patternUpdated": outcome.pattern_updated,
        "confidence": outcome.confidence,
    }


# ============================================================
# ANALYTICS
# ============================================================

@router.get("/analytics")
def get_analytics(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Pattern and feedback statistics for the current user."""
    return learning_analytics(db, current_user.id)


@router.get("/health")
def get_learning_health(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """How well the assistant is learning, with recommendations."""
    return learning_health(db, current_user.id)
