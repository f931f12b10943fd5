"""
TrainingExample model: labeled input/output pairs that feed training runs.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, Boolean, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class TrainingExample(Base):
    __tablename__ = "training_data"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    input = Column(Text, nullable=False)
    output = Column(Text, nullable=False)
    category = Column(String(50), nullable=True, index=True)  # react, javascript, programming, greeting, ...
    quality_score = Column(Float, default=3.0, index=True)  # 1-5
    tags = Column(JSON, default=list)
    extra_data = Column("metadata", JSON, default=dict)
    auto_collected = Column(Boolean, default=False)
    used_in_training = Column(Boolean, default=False, index=True)
    training_job_id = Column(Integer, nullable=True, index=True)
    feedback = Column(Float, nullable=True)  # 1-5 user rating
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="training_examples")

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "input": self.input,
            "output": self.output,
            "category": self.category,
            "quality_score": self.quality_score,
            "tags": self.tags or [],
            "metadata": self.extra_data or {},
            "auto_collected": self.auto_collected,
            "used_in_training": self.used_in_training,
            "training_job_id": self.training_job_id,
            "feedback": self.feedback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
