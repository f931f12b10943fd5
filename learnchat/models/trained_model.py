"""
TrainedModel model: the artifact record a completed training job produces.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, Boolean, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class TrainedModel(Base):
    __tablename__ = "models"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="trained", index=True)  # trained, deployed, archived
    model_type = Column(String(50), default="conversational")
    specialization = Column(String(50), default="general")
    accuracy = Column(Float, default=0.0)
    training_examples = Column(Integer, default=0)
    training_duration_seconds = Column(Integer, default=0)
    performance_metrics = Column(JSON, default=dict)
    model_config = Column(JSON, default=dict)
    is_active = Column(Boolean, default=False, index=True)
    training_job_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="models")

    def summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "accuracy": self.accuracy,
            "status": self.status,
        }

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "model_type": self.model_type,
            "specialization": self.specialization,
            "accuracy": self.accuracy,
            "training_examples": self.training_examples,
            "training_duration_seconds": self.training_duration_seconds,
            "performance_metrics": self.performance_metrics or {},
            "model_config": self.model_config or {},
            "is_active": self.is_active,
            "training_job_id": self.training_job_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
