"""
LearnChat Text Matching
=======================
Lexical helpers shared by the response selector and the training-data
endpoints:
1. Tokenization with stop-word filtering
2. Keyword-overlap scoring of a message against a stored example
3. Deterministic category classification for fallback replies
4. Tag extraction for auto-collected examples
"""

import re
from typing import Dict, List, Optional, Set


# ============================================================
# VOCABULARY
# ============================================================

STOP_WORDS: Set[str] = {
    "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
    "had", "her", "was", "one", "our", "out", "has", "his", "how", "its",
    "let", "may", "new", "now", "old", "see", "two", "way", "who", "did",
    "get", "him", "she", "too", "use", "this", "that", "with", "have",
    "from", "they", "will", "would", "there", "their", "what", "about",
    "which", "when", "make", "like", "just", "into", "than", "then",
    "them", "these", "some", "could", "should", "your", "been", "does",
    "were", "also", "more", "very", "want", "need", "here", "where",
    "why", "please",
}

# Technical terms that count as "important" overlaps regardless of length
DOMAIN_KEYWORDS: Set[str] = {
    "javascript", "react", "node", "python", "css", "html", "api",
    "database", "sql", "component", "components", "hooks", "async",
    "await", "promise", "function", "variable", "class", "array",
    "object", "debug", "error", "server", "deploy", "docker", "git",
    "typescript", "json", "http", "rest", "state", "props", "agile",
}

QUESTION_WORDS: Set[str] = {
    "what", "how", "why", "when", "where", "who", "which", "can", "could",
    "should", "would", "is", "are", "do", "does", "did", "will",
}

# Checked in order; first hit wins
CATEGORY_KEYWORDS: List[tuple] = [
    ("programming", {"code", "javascript", "react", "python", "function", "variable", "debug", "html", "css", "api"}),
    ("greeting", {"hello", "hi", "hey", "good morning", "good afternoon", "good evening"}),
    ("help", {"help", "how", "what", "explain", "tell me", "show me", "can you", "could you"}),
]

FALLBACK_TEMPLATES: Dict[str, str] = {
    "programming": (
        "That sounds like a programming question. I haven't learned enough about this "
        "topic yet to answer confidently. Could you share the code you're working with "
        "or the error you're seeing? Adding training examples on this topic will help "
        "me answer better next time."
    ),
    "greeting": (
        "Hello! I'm your learning assistant. I get better with every conversation and "
        "every training example you add. What would you like to talk about?"
    ),
    "help": (
        "I'd like to help with that. I don't have a learned answer for this yet, so "
        "could you give me a bit more detail about what you're trying to do?"
    ),
    "general": (
        "I'm still learning about this topic. Could you tell me more? You can also "
        "teach me by adding a training example with the answer you'd expect."
    ),
}

_WORD_RE = re.compile(r"[a-z0-9]+")


# ============================================================
# NORMALIZATION
# ============================================================

def normalize(text: Optional[str]) -> str:
    """Lower-case and trim"""
    return (text or "").lower().strip()


def words(text: Optional[str]) -> List[str]:
    """All lower-cased alphanumeric words, in order"""
    return _WORD_RE.findall(normalize(text))


def tokenize(text: Optional[str]) -> Set[str]:
    """Content tokens: alphanumeric words minus stop-words and words of 2 chars or fewer"""
    return {w for w in words(text) if len(w) > 2 and w not in STOP_WORDS}


def is_question(text: Optional[str]) -> bool:
    normalized = normalize(text)
    if "?" in normalized:
        return True
    all_words = words(normalized)
    return bool(all_words) and all_words[0] in QUESTION_WORDS


# ============================================================
# SCORING
# ============================================================

def is_important(token: str) -> bool:
    return token in DOMAIN_KEYWORDS or len(token) > 6


def keyword_overlap_score(message: str, candidate: str, quality_score: Optional[float] = 3.0) -> float:
    """
    Score how well a stored example input matches an incoming message.

    +60 prefix containment, +40 x Jaccard similarity of content tokens,
    +15 per shared important token, +(quality - 3) x 12, and +10 when both
    texts are questions.
    """
    a = normalize(message)
    b = normalize(candidate)
    score = 0.0

    if a and b and (a[:20] in b or b[:20] in a):
        score += 60

    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    union = tokens_a | tokens_b
    shared = tokens_a & tokens_b
    if union:
        score += 40 * len(shared) / len(union)

    score += 15 * sum(1 for token in shared if is_important(token))

    quality = quality_score if quality_score is not None else 3.0
    score += (quality - 3) * 12

    if is_question(a) and is_question(b):
        score += 10

    return score


# ============================================================
# CLASSIFICATION
# ============================================================

def _phrase_text(text: str) -> str:
    return " " + " ".join(words(text)) + " "


def classify(message: Optional[str]) -> str:
    """Map a message to programming, greeting, help or general"""
    tokens = set(words(message))
    padded = _phrase_text(message or "")

    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if " " in keyword:
                if f" {keyword} " in padded:
                    return category
            elif keyword in tokens:
                return category

    return "general"


def extract_tags(message: Optional[str], limit: int = 5) -> List[str]:
    """Domain keywords present in the message, in order of appearance"""
    tags: List[str] = []
    for word in words(message):
        if word in DOMAIN_KEYWORDS and word not in tags:
            tags.append(word)
        if len(tags) >= limit:
            break
    return tags
