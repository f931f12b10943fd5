"""
TrainingJob model: one simulated training run and its progress.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, JSON, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base

ACTIVE_STATUSES = ("pending", "running")
TERMINAL_STATUSES = ("completed", "failed")


class TrainingJob(Base):
    __tablename__ = "training_jobs"
    __table_args__ = (
        # At most one pending/running job per user
        Index(
            "uq_training_jobs_one_active_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'running')"),
            postgresql_where=text("status IN ('pending', 'running')"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default="pending", index=True)  # pending, running, completed, failed
    training_type = Column(String(20), default="regular")  # regular, advanced
    specialization = Column(String(50), default="general")
    training_data_count = Column(Integer, default=0)
    epochs = Column(Integer, default=5)
    batch_size = Column(Integer, default=16)
    learning_rate = Column(Float, default=0.001)
    current_epoch = Column(Integer, default=0)
    progress_percentage = Column(Float, default=0.0)  # 0-100
    loss_value = Column(Float, nullable=True)
    accuracy_value = Column(Float, nullable=True)
    model_id = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    model_config = Column(JSON, default=dict)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="training_jobs")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "status": self.status,
            "training_type": self.training_type,
            "specialization": self.specialization,
            "training_data_count": self.training_data_count,
            "epochs": self.epochs,
            "batch_size": self.batch_size,
            "learning_rate": self.learning_rate,
            "current_epoch": self.current_epoch,
            "progress_percentage": self.progress_percentage,
            "loss_value": self.loss_value,
            "accuracy_value": self.accuracy_value,
            "model_id": self.model_id,
            "error_message": self.error_message,
            "model_config": self.model_config or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
