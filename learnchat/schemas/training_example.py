from pydantic import BaseModel
from typing import List, Optional


class TrainingExampleCreate(BaseModel):
    input: Optional[str] = None
    output: Optional[str] = None
    category: Optional[str] = None
    quality_score: float = 3.0
    tags: List[str] = []


class TrainingExampleUpdate(BaseModel):
    id: Optional[int] = None
    input: Optional[str] = None
    output: Optional[str] = None
    category: Optional[str] = None
    quality_score: Optional[float] = None
    tags: Optional[List[str]] = None
    feedback: Optional[float] = None


class TrainingStatistics(BaseModel):
    total: int
    used_in_training: int
    unused: int
    high_quality: int
    categories: List[str]


class TrainingExampleBulkCreate(BaseModel):
    examples: List[TrainingExampleCreate] = []
    source: str = "import"
