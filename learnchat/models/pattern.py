"""
Learned input -> response patterns and the feedback log that tunes them.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


class LearningPattern(Base):
    __tablename__ = "learning_patterns"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pattern_type = Column(String(50), default="conversation")
    input_pattern = Column(Text, nullable=False)
    response_pattern = Column(Text, nullable=False)
    category = Column(String(50), nullable=True, index=True)
    confidence = Column(Float, default=0.5, index=True)  # clamped to [0.1, 1.0]
    use_count = Column(Integer, default=1)
    learned_from = Column(String(50), default="manual")  # manual, external_model
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="patterns")

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "pattern_type": self.pattern_type,
            "input_pattern": self.input_pattern,
            "response_pattern": self.response_pattern,
            "category": self.category,
            "confidence": self.confidence,
            "use_count": self.use_count,
            "learned_from": self.learned_from,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PatternFeedback(Base):
    """Append-only feedback events; rows are never updated."""
    __tablename__ = "pattern_feedback"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pattern_id = Column(Integer, ForeignKey("learning_patterns.id", ondelete="SET NULL"), nullable=True, index=True)
    feedback_type = Column(String(20), nullable=False)  # positive, negative, correction
    feedback_score = Column(Integer, nullable=True)
    original_response = Column(Text, nullable=True)
    corrected_response = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "pattern_id": self.pattern_id,
            "feedback_type": self.feedback_type,
            "feedback_score": self.feedback_score,
            "original_response": self.original_response,
            "corrected_response": self.corrected_response,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
