"""
BrainMemory model: importance-ranked notes recalled into chat context.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class BrainMemory(Base):
    __tablename__ = "brain_memories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(30), default="episodic", index=True)  # episodic, semantic, procedural
    content = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
    importance = Column(Float, default=0.5, index=True)  # 0-1
    confidence = Column(Float, default=0.8)
    category = Column(String(50), nullable=True, index=True)
    tags = Column(JSON, default=list)
    source_id = Column(String(100), nullable=True)
    source_type = Column(String(50), nullable=True)  # conversation, manual
    access_count = Column(Integer, default=0)
    last_accessed = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="memories")

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "summary": self.summary,
            "importance": self.importance,
            "confidence": self.confidence,
            "category": self.category,
            "tags": self.tags or [],
            "source_id": self.source_id,
            "source_type": self.source_type,
            "access_count": self.access_count,
            "last_accessed": self.last_accessed.isoformat() if self.last_accessed else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
