"""
Learning analytics and health, computed live from patterns, feedback and
training examples.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import LearningPattern, PatternFeedback, TrainingExample

HIGH_CONFIDENCE = 0.7
RECENT_WINDOW = timedelta(hours=24)
HEALTH_ACTIVITY_WINDOW = timedelta(days=7)
HEALTHY_MIN_PATTERNS = 10
HEALTHY_MIN_CONFIDENCE = 0.6
ATTENTION_CONFIDENCE = 0.4
TRAINING_BATCH_HINT = 5


def _pattern_totals(db: Session, user_id: int) -> Dict:
    total, avg_confidence, interactions = (
        db.query(
            func.count(LearningPattern.id),
            func.avg(LearningPattern.confidence),
            func.sum(LearningPattern.use_count),
        )
        .filter(LearningPattern.user_id == user_id)
        .one()
    )
    high = (
        db.query(func.count(LearningPattern.id))
        .filter(LearningPattern.user_id == user_id, LearningPattern.confidence >= HIGH_CONFIDENCE)
        .scalar()
    )
    return {
        "total": total or 0,
        "high": high or 0,
        "avg_confidence": float(avg_confidence or 0.0),
        "interactions": int(interactions or 0),
    }


def _has_patterns_since(db: Session, user_id: int, window: timedelta) -> bool:
    cutoff = datetime.now(timezone.utc) - window
    return (
        db.query(LearningPattern.id)
        .filter(LearningPattern.user_id == user_id, LearningPattern.created_at >= cutoff)
        .first()
        is not None
    )


def learning_analytics(db: Session, user_id: int) -> Dict:
    totals = _pattern_totals(db, user_id)

    feedback = {feedback_type: 0 for feedback_type in ("positive", "negative", "correction")}
    rows = (
        db.query(PatternFeedback.feedback_type, func.count(PatternFeedback.id))
        .filter(PatternFeedback.user_id == user_id)
        .group_by(PatternFeedback.feedback_type)
        .all()
    )
    for feedback_type, count in rows:
        feedback[feedback_type] = count

    return {
        "totalPatterns": totals["total"],
        "highConfidencePatterns": totals["high"],
        "averageConfidence": round(totals["avg_confidence"], 4),
        "learningRate": round(totals["high"] / totals["total"], 4) if totals["total"] else 0.0,
        "totalInteractions": totals["interactions"],
        "recentActivity": _has_patterns_since(db, user_id, RECENT_WINDOW),
        "feedback": feedback,
    }


def learning_health(db: Session, user_id: int) -> Dict:
    """Overall status (beginning, needs_attention, learning, healthy) with recommendations"""
    totals = _pattern_totals(db, user_id)
    recent = _has_patterns_since(db, user_id, HEALTH_ACTIVITY_WINDOW)

    total_examples = (
        db.query(func.count(TrainingExample.id)).filter(TrainingExample.user_id == user_id).scalar() or 0
    )
    unused_examples = (
        db.query(func.count(TrainingExample.id))
        .filter(TrainingExample.user_id == user_id, TrainingExample.used_in_training.is_(False))
        .scalar()
        or 0
    )

    avg_confidence = totals["avg_confidence"]
    if totals["total"] == 0:
        status = "beginning"
    elif avg_confidence < ATTENTION_CONFIDENCE:
        status = "needs_attention"
    elif totals["total"] < HEALTHY_MIN_PATTERNS or avg_confidence < HEALTHY_MIN_CONFIDENCE or not recent:
        status = "learning"
    else:
        status = "healthy"

    recommendations: List[str] = []
    if totals["total"] == 0:
        recommendations.append("Start chatting to begin learning!")
    if totals["total"] and avg_confidence < HEALTHY_MIN_CONFIDENCE:
        recommendations.append("Rate responses and send corrections to raise pattern confidence")
    if totals["total"] and not recent:
        recommendations.append("No new patterns this week; keep chatting to keep learning")
    if total_examples < TRAINING_BATCH_HINT:
        recommendations.append("Add more training examples to improve responses")
    if unused_examples >= TRAINING_BATCH_HINT:
        recommendations.append(f"{unused_examples} training examples are ready; start a training run")

    return {
        "status": status,
        "total_patterns": totals["total"],
        "avg_confidence": round(avg_confidence, 4),
        "recent_learning_activity": recent,
        "total_training_examples": total_examples,
        "unused_training_examples": unused_examples,
        "recommendations": recommendations,
    }
