from .auth import UserCreate, UserSummary, UserResponse, AuthResponse
from .training_example import (
    TrainingExampleCreate,
    TrainingExampleBulkCreate,
    TrainingExampleUpdate,
    TrainingStatistics,
)
from .pattern import PatternCreate, PatternUpdate, FeedbackCreate
from .chat import ChatRequest, ChatResponse
from .training import TrainingRequest, ModelActivate, ModelUpdate
from .memory import MemoryCreate, MemoryUpdate

__all__ = [
    "UserCreate", "UserSummary", "UserResponse", "AuthResponse",
    "TrainingExampleCreate", "TrainingExampleBulkCreate", "TrainingExampleUpdate", "TrainingStatistics",
    "PatternCreate", "PatternUpdate", "FeedbackCreate",
    "ChatRequest", "ChatResponse",
    "TrainingRequest", "ModelActivate", "ModelUpdate",
    "MemoryCreate", "MemoryUpdate",
]
