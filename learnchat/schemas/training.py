from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional


class TrainingRequest(BaseModel):
    """Body of POST /api/ai/train. Unset fields take the profile's defaults."""
    epochs: Optional[int] = Field(None, ge=1, le=100)
    learning_rate: Optional[float] = Field(None, gt=0)
    batch_size: Optional[int] = Field(None, ge=1)
    model_name: Optional[str] = None
    specialization: str = "general"
    use_memory_system: Optional[bool] = None
    use_auto_learning: Optional[bool] = None
    seed_if_empty: Optional[bool] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()


class ModelActivate(BaseModel):
    model_id: Optional[int] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()


class ModelUpdate(BaseModel):
    model_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()
