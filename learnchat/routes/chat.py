"""
Chat routes: send a message, list conversations, read a transcript.
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Optional

from ..database import get_db
from ..models import BrainMemory, Conversation, Message, User
from ..auth import get_required_user
from ..config import get_settings
from ..limiter import limiter
from ..logging_config import chat_logger
from ..responses import NotFoundError, ValidationError, success
from ..schemas.chat import ChatRequest, ChatResponse
from ..worker.external_model import TextGenerator, get_text_generator
from ..worker.response_selector import ResponseSelector

settings = get_settings()

router = APIRouter(prefix="/api/ai", tags=["chat"])

TITLE_CHARS = 50
MEMORY_CONFIDENCE = 0.7
MEMORY_IMPORTANCE = 0.6


def conversation_title(message: str) -> str:
    return message[:TITLE_CHARS] + ("..." if len(message) > TITLE_CHARS else "")


def _get_owned_conversation(db: Session, user_id: int, conversation_id: int) -> Conversation:
    conversation = db.query(Conversation).filter(
        Conversation.id == conversation_id,
        Conversation.user_id == user_id
    ).first()
    if not conversation:
        raise NotFoundError("Conversation", conversation_id)
    return conversation


def recent_messages(db: Session, conversation_id: int, limit: int):
    """Last ``limit`` messages, oldest first"""
    if limit <= 0:
        return []
    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(rows))


@router.post("/chat", response_model=ChatResponse)
@limiter.limit(settings.chat_rate_limit)
def chat(
    request: Request,
    body: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
):
    """Reply to a message, learning from the exchange where possible."""
    if not body.message or not body.message.strip():
        raise ValidationError("Message is required")
    message = body.message.strip()

    if body.conversation_id is not None:
        conversation = _get_owned_conversation(db, current_user.id, body.conversation_id)
    else:
        conversation = Conversation(user_id=current_user.id, title=conversation_title(message), status="active")
        db.add(conversation)
        db.commit()
        db.refresh(conversation)

    history = recent_messages(db, conversation.id, settings.chat_context_turns)

    db.add(Message(conversation_id=conversation.id, role="user", content=message, details={}))
    db.commit()

    selector = ResponseSelector(db, generator=generator, context_turns=settings.chat_context_turns)
    selected = selector.select(current_user.id, message, history)

    reply = Message(
        conversation_id=conversation.id,
        role="assistant",
        content=selected.content,
        details=selected.to_metadata(),
    )
    db.add(reply)

    if selected.confidence > MEMORY_CONFIDENCE:
        db.add(BrainMemory(
            user_id=current_user.id,
            type="episodic",
            content=f'User asked: "{message}" and I responded: "{selected.content}"',
            summary=f"Conversation about {selected.category}",
            importance=MEMORY_IMPORTANCE,
            confidence=selected.confidence,
            category=selected.category,
            tags=[],
            source_id=str(conversation.id),
            source_type="conversation",
        ))

    conversation.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(reply)

    chat_logger.info(
        "Chat reply",
        user_id=current_user.id,
        conversation_id=conversation.id,
        source=selected.source,
        confidence=selected.confidence,
    )

    return ChatResponse(
        response=selected.content,
        conversation_id=conversation.id,
        message_id=reply.id,
        confidence=selected.confidence,
        source=selected.source,
        category=selected.category,
        learned=selected.learned,
    )


@router.get("/conversations")
def list_conversations(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """The current user's conversations, most recently active first."""
    conversations = (
        db.query(Conversation)
        .filter(Conversation.user_id == current_user.id)
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .limit(limit)
        .all()
    )
    return success(conversations=[c.to_dict() for c in conversations])


@router.get("/conversations/{conversation_id}/messages")
def get_conversation_messages(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Full transcript of one conversation, oldest first."""
    conversation = _get_owned_conversation(db, current_user.id, conversation_id)
    return success(
        conversation=conversation.to_dict(),
        messages=[m.to_dict() for m in conversation.messages],
    )
