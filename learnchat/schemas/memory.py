from pydantic import BaseModel
from typing import List, Optional


class MemoryCreate(BaseModel):
    type: str = "episodic"
    content: Optional[str] = None
    summary: Optional[str] = None
    importance: float = 0.5
    category: Optional[str] = None
    tags: List[str] = []


class MemoryUpdate(BaseModel):
    id: Optional[int] = None
    importance: Optional[float] = None
    tags: Optional[List[str]] = None
    summary: Optional[str] = None
