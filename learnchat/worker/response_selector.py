"""
LearnChat Response Selector
===========================
Picks the reply for a chat message, trying each source in turn:
1. A learned pattern whose input overlaps the message (confidence >= 0.5)
2. The external text generator, if configured (its reply is learned)
3. The keyword-overlap scorer over recent training examples
4. A fixed per-category fallback
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..logging_config import chat_logger, timed
from ..models import BrainMemory, LearningPattern, TrainingExample
from ..responses import UpstreamError
from .external_model import TextGenerator
from .text_matching import (
    FALLBACK_TEMPLATES,
    classify,
    extract_tags,
    keyword_overlap_score,
    normalize,
)


# ============================================================
# CONFIGURATION
# ============================================================

class SelectorConfig:
    """Response selection thresholds"""

    PATTERN_MIN_CONFIDENCE = 0.5
    PATTERN_PREFIX_CHARS = 50

    LEARNED_PATTERN_CONFIDENCE = 0.8
    LEARNED_INPUT_CHARS = 200
    EXAMPLE_MIN_CONFIDENCE = 0.6  # learned replies above this also become training examples

    SCORER_CANDIDATES = 30
    STRONG_MATCH_SCORE = 40
    WEAK_MATCH_SCORE = 20
    STRONG_MATCH_PREFIX = "Based on what I've learned from our previous conversations:"
    WEAK_MATCH_PREFIX = "This might be related to something we covered before:"
    WEAK_MATCH_CONFIDENCE = 0.5

    FALLBACK_CONFIDENCE = 0.4
    PROMPT_MEMORIES = 3


SYSTEM_PROMPT = (
    "You are a helpful learning assistant. Answer clearly and concisely, stay "
    "consistent with earlier turns of the conversation, and say so when you are "
    "unsure."
)


# ============================================================
# DATA MODELS
# ============================================================

@dataclass
class SelectedResponse:
    """The chosen reply and where it came from"""
    content: str
    confidence: float
    source: str                        # learned_pattern, external_model, fallback
    category: str
    pattern_id: Optional[int] = None
    example_id: Optional[int] = None
    learned: bool = False
    details: Dict = field(default_factory=dict)

    def to_metadata(self) -> Dict:
        """Metadata stored on the assistant message"""
        return {
            "confidence": self.confidence,
            "source": self.source,
            "category": self.category,
            "patternId": self.pattern_id,
            "exampleId": self.example_id,
        }


# ============================================================
# SELECTOR
# ============================================================

class ResponseSelector:
    """
    Chooses a reply for one user's message.

    Writes (pattern usage, learned pattern and example) are added to the
    session but not committed; the caller commits them together with the
    assistant message.
    """

    def __init__(self, db: Session, generator: Optional[TextGenerator] = None, context_turns: int = 6):
        self.db = db
        self.generator = generator
        self.context_turns = context_turns

    @timed(chat_logger)
    def select(self, user_id: int, message: str, history: Sequence = ()) -> SelectedResponse:
        category = classify(message)

        result = self._match_pattern(user_id, message, category)
        if result:
            return result

        if self.generator is not None:
            try:
                return self._generate(user_id, message, history, category)
            except UpstreamError as e:
                chat_logger.warning(
                    "External model unavailable, falling back",
                    user_id=user_id,
                    error=e.detail,
                )

        result = self._score_examples(user_id, message, category)
        if result:
            return result

        return self.fallback(message)

    # --------------------------------------------------------
    # Step 1: learned patterns
    # --------------------------------------------------------

    def _match_pattern(self, user_id: int, message: str, category: str) -> Optional[SelectedResponse]:
        normalized = normalize(message)
        prefix = normalized[:SelectorConfig.PATTERN_PREFIX_CHARS]

        patterns = (
            self.db.query(LearningPattern)
            .filter(LearningPattern.user_id == user_id)
            .order_by(
                LearningPattern.confidence.desc(),
                LearningPattern.created_at.desc(),
                LearningPattern.id.desc(),
            )
            .all()
        )

        for pattern in patterns:
            input_pattern = normalize(pattern.input_pattern)
            if not input_pattern:
                continue
            if input_pattern in normalized or (prefix and prefix in input_pattern):
                # Patterns are in confidence order, so the first match is the best one
                if pattern.confidence < SelectorConfig.PATTERN_MIN_CONFIDENCE:
                    return None

                pattern.use_count = (pattern.use_count or 0) + 1
                pattern.last_used_at = datetime.now(timezone.utc)
                chat_logger.debug("Matched learned pattern", pattern_id=pattern.id, user_id=user_id)
                return SelectedResponse(
                    content=pattern.response_pattern,
                    confidence=pattern.confidence,
                    source="learned_pattern",
                    category=pattern.category or category,
                    pattern_id=pattern.id,
                )

        return None

    # --------------------------------------------------------
    # Step 2: external model
    # --------------------------------------------------------

    def build_messages(self, user_id: int, message: str, history: Sequence) -> List[Dict[str, str]]:
        """System prompt with top memories, recent turns, then the message"""
        memories = (
            self.db.query(BrainMemory)
            .filter(BrainMemory.user_id == user_id)
            .order_by(BrainMemory.importance.desc(), BrainMemory.id.desc())
            .limit(SelectorConfig.PROMPT_MEMORIES)
            .all()
        )

        system_prompt = SYSTEM_PROMPT
        if memories:
            notes = "\n".join(f"- {m.summary or m.content[:200]}" for m in memories)
            system_prompt += f"\n\nThings you remember about this user:\n{notes}"

        messages = [{"role": "system", "content": system_prompt}]
        turns = list(history)[-self.context_turns:] if self.context_turns > 0 else []
        for turn in turns:
            role = turn.role if turn.role in ("user", "assistant") else "assistant"
            messages.append({"role": role, "content": turn.content})
        messages.append({"role": "user", "content": message})
        return messages

    def _generate(self, user_id: int, message: str, history: Sequence, category: str) -> SelectedResponse:
        content = self.generator.generate(self.build_messages(user_id, message, history))
        confidence = SelectorConfig.LEARNED_PATTERN_CONFIDENCE

        pattern = LearningPattern(
            user_id=user_id,
            pattern_type="conversation",
            input_pattern=normalize(message)[:SelectorConfig.LEARNED_INPUT_CHARS],
            response_pattern=content,
            category=category,
            confidence=confidence,
            use_count=1,
            learned_from="external_model",
        )
        self.db.add(pattern)

        example = None
        if confidence > SelectorConfig.EXAMPLE_MIN_CONFIDENCE:
            example = TrainingExample(
                user_id=user_id,
                input=message.strip(),
                output=content,
                category=category,
                quality_score=round(confidence * 5, 2),
                tags=extract_tags(message),
                extra_data={"source": "external_model"},
                auto_collected=True,
            )
            self.db.add(example)

        self.db.flush()
        chat_logger.info("Learned pattern from external model", pattern_id=pattern.id, user_id=user_id)

        return SelectedResponse(
            content=content,
            confidence=confidence,
            source="external_model",
            category=category,
            pattern_id=pattern.id,
            example_id=example.id if example else None,
            learned=True,
        )

    # --------------------------------------------------------
    # Step 3: keyword-overlap scorer
    # --------------------------------------------------------

    def _score_examples(self, user_id: int, message: str, category: str) -> Optional[SelectedResponse]:
        candidates = (
            self.db.query(TrainingExample)
            .filter(TrainingExample.user_id == user_id)
            .order_by(TrainingExample.created_at.desc(), TrainingExample.id.desc())
            .limit(SelectorConfig.SCORER_CANDIDATES)
            .all()
        )

        best = None
        best_score = 0.0
        for example in candidates:
            score = keyword_overlap_score(message, example.input, example.quality_score)
            # Strictly greater: ties keep the most recent candidate
            if best is None or score > best_score:
                best, best_score = example, score

        if best is None or best_score <= SelectorConfig.WEAK_MATCH_SCORE:
            return None

        if best_score > SelectorConfig.STRONG_MATCH_SCORE:
            prefix = SelectorConfig.STRONG_MATCH_PREFIX
            confidence = min(0.95, 0.5 + best_score / 200)
        else:
            prefix = SelectorConfig.WEAK_MATCH_PREFIX
            confidence = SelectorConfig.WEAK_MATCH_CONFIDENCE

        chat_logger.debug(
            "Matched training example",
            example_id=best.id,
            score=round(best_score, 2),
            user_id=user_id,
        )
        return SelectedResponse(
            content=f"{prefix}\n\n{best.output}",
            confidence=round(confidence, 4),
            source="learned_pattern",
            category=best.category or category,
            example_id=best.id,
            details={"score": round(best_score, 2)},
        )

    # --------------------------------------------------------
    # Step 4: fallback
    # --------------------------------------------------------

    @staticmethod
    def fallback(message: str) -> SelectedResponse:
        category = classify(message)
        return SelectedResponse(
            content=FALLBACK_TEMPLATES[category],
            confidence=SelectorConfig.FALLBACK_CONFIDENCE,
            source="fallback",
            category=category,
        )
