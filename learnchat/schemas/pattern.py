from pydantic import BaseModel
from typing import Optional


class PatternCreate(BaseModel):
    input_pattern: Optional[str] = None
    response_pattern: Optional[str] = None
    category: Optional[str] = None
    confidence: float = 0.5


class PatternUpdate(BaseModel):
    id: Optional[int] = None
    confidence: Optional[float] = None
    response_pattern: Optional[str] = None
    category: Optional[str] = None


class FeedbackCreate(BaseModel):
    pattern_id: Optional[int] = None
    feedback_type: Optional[str] = None  # positive, negative, correction
    feedback_score: Optional[int] = None
    original_response: Optional[str] = None
    corrected_response: Optional[str] = None
