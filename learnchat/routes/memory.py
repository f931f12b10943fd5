"""
Memory routes: importance-ranked notes the assistant keeps about a user.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Optional

from ..database import get_db
from ..models import BrainMemory, User
from ..auth import get_required_user
from ..responses import NotFoundError, ValidationError, clamp, success
from ..schemas.memory import MemoryCreate, MemoryUpdate

router = APIRouter(prefix="/api/ai/memory", tags=["memory"])

SUMMARY_CHARS = 200


def summarize(content: str) -> str:
    if len(content) <= SUMMARY_CHARS:
        return content
    return content[:SUMMARY_CHARS] + "..."


def _get_owned_memory(db: Session, user_id: int, memory_id: int) -> BrainMemory:
    memory = db.query(BrainMemory).filter(
        BrainMemory.id == memory_id,
        BrainMemory.user_id == user_id
    ).first()
    if not memory:
        raise NotFoundError("Memory", memory_id)
    return memory


@router.get("")
def search_memories(
    query: Optional[str] = None,
    type: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    min_importance: float = 0.3,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Search memories by text, most important first. Returned memories count as accessed."""
    q = db.query(BrainMemory).filter(
        BrainMemory.user_id == current_user.id,
        BrainMemory.importance >= min_importance,
    )
    if type:
        q = q.filter(BrainMemory.type == type)
    if category:
        q = q.filter(BrainMemory.category == category)
    if query and query.strip():
        term = f"%{query.strip()}%"
        q = q.filter(or_(BrainMemory.content.ilike(term), BrainMemory.summary.ilike(term)))

    memories = q.order_by(BrainMemory.importance.desc(), BrainMemory.id.desc()).limit(limit).all()

    now = datetime.now(timezone.utc)
    for memory in memories:
        memory.access_count = (memory.access_count or 0) + 1
        memory.last_accessed = now
    if memories:
        db.commit()

    return success(
        memories=[memory.to_dict() for memory in memories],
        total=len(memories),
    )


@router.post("")
def create_memory(
    data: MemoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Store a memory."""
    if not data.content or not data.content.strip():
        raise ValidationError("Memory content is required")

    content = data.content.strip()
    memory = BrainMemory(
        user_id=current_user.id,
        type=data.type or "episodic",
        content=content,
        summary=data.summary.strip() if data.summary and data.summary.strip() else summarize(content),
        importance=clamp(data.importance, 0.0, 1.0),
        category=data.category,
        tags=list(data.tags),
        source_type="manual",
    )
    db.add(memory)
    db.commit()
    db.refresh(memory)
    return success(memory=memory.to_dict())


@router.put("")
def update_memory(
    data: MemoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Update a memory's importance, tags or summary."""
    if data.id is None:
        raise ValidationError("Memory ID is required")

    memory = _get_owned_memory(db, current_user.id, data.id)
    if data.importance is not None:
        memory.importance = clamp(data.importance, 0.0, 1.0)
    if data.tags is not None:
        memory.tags = list(data.tags)
    if data.summary is not None:
        memory.summary = data.summary

    db.commit()
    db.refresh(memory)
    return success(memory=memory.to_dict())


@router.delete("")
def delete_memory(
    id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Forget a memory."""
    if id is None:
        raise ValidationError("Memory ID is required")

    memory = _get_owned_memory(db, current_user.id, id)
    db.delete(memory)
    db.commit()
    return success(message="Memory deleted")
