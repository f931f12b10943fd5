from .user import User
from .training_example import TrainingExample
from .pattern import LearningPattern, PatternFeedback
from .conversation import Conversation, Message
from .training_job import TrainingJob
from .trained_model import TrainedModel
from .memory import BrainMemory

__all__ = [
    "User",
    "TrainingExample",
    "LearningPattern",
    "PatternFeedback",
    "Conversation",
    "Message",
    "TrainingJob",
    "TrainedModel",
    "BrainMemory",
]
