from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional


class ChatRequest(BaseModel):
    message: Optional[str] = None
    conversation_id: Optional[int] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ChatResponse(BaseModel):
    response: str
    conversation_id: int
    message_id: int
    confidence: float
    source: str
    category: str
    learned: bool

    class Config:
        alias_generator = to_camel
        populate_by_name = True
