from .auth import router as auth_router
from .chat import router as chat_router
from .training import router as training_router
from .trained_models import router as models_router
from .learning import router as learning_router
from .training_data import router as training_data_router
from .memory import router as memory_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "chat_router",
    "training_router",
    "models_router",
    "learning_router",
    "training_data_router",
    "memory_router",
    "health_router",
]
