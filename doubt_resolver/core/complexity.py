"""
Question complexity classification.

Scores the structural difficulty of a question from lexical signals only.
The score drives tier selection in the model router.

Scoring rules (applied in order, each adds a reason):
1. Length - +2 above 500 characters, +1 above 200
2. Equation-like patterns - +3 for 3 or more matches, +1 for at least one
3. Hard keywords - +2 per matched phrase
4. Expert keywords - +3 per matched phrase
5. Multi-step markers - +2 for "step 1", "part a" and similar

Score to level: >= 8 expert, >= 5 hard, >= 2 medium, otherwise easy.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Pattern, Tuple


class ComplexityLevel(str, Enum):
    """Complexity levels in fallback order (least to most capable)."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


@dataclass(frozen=True)
class ComplexityAssessment:
    """Result of classifying one question."""
    level: ComplexityLevel
    score: int
    reasons: Tuple[str, ...]


EQUATION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"[=+\-*/^√∫∑∏]"),
    re.compile(r"\d+\s*[+\-*/^]\s*\d+"),
    re.compile(r"\\frac|\\int|\\sum|\\sqrt"),
    re.compile(r"\b(sin|cos|tan|log|ln|lim|derivative|integral)\b", re.IGNORECASE),
    re.compile(r"\b(equation|formula|solve|calculate|compute|evaluate)\b", re.IGNORECASE),
)

HARD_KEYWORDS = (
    "jee advanced", "jee main", "neet", "derivation", "prove that",
    "multi-step", "complex", "advanced", "numerical", "integration",
    "differentiation", "organic mechanism", "quantum", "thermodynamics",
    "electromagnetic", "nuclear", "relativity",
)

EXPERT_KEYWORDS = (
    "olympiad", "research", "graduate level", "phd", "advanced topology",
    "abstract algebra", "real analysis", "complex analysis",
)

MULTI_STEP_PATTERN = re.compile(r"step\s*[1-9]|part\s*[a-e(]", re.IGNORECASE)

LONG_QUESTION_CHARS = 500
MEDIUM_QUESTION_CHARS = 200

EXPERT_THRESHOLD = 8
HARD_THRESHOLD = 5
MEDIUM_THRESHOLD = 2


SHORT_KEYWORD_CHARS = 3


def keyword_pattern(keyword: str) -> Pattern[str]:
    """Compile a case-insensitive pattern matching keyword at a word start.

    Keywords of three characters or fewer ("sin", "lim", "dna") must match
    a whole word, so "cost" and "since" are not read as "cos" and "sin".
    """
    pattern = r"\b" + re.escape(keyword)
    if len(keyword) <= SHORT_KEYWORD_CHARS:
        pattern += r"\b"
    return re.compile(pattern, re.IGNORECASE)


_HARD_PATTERNS = [(k, keyword_pattern(k)) for k in HARD_KEYWORDS]
_EXPERT_PATTERNS = [(k, keyword_pattern(k)) for k in EXPERT_KEYWORDS]


def _matched_keywords(question: str, patterns) -> List[str]:
    return [keyword for keyword, pattern in patterns if pattern.search(question)]


def level_for_score(score: int) -> ComplexityLevel:
    """Map a raw complexity score to its level."""
    if score >= EXPERT_THRESHOLD:
        return ComplexityLevel.EXPERT
    if score >= HARD_THRESHOLD:
        return ComplexityLevel.HARD
    if score >= MEDIUM_THRESHOLD:
        return ComplexityLevel.MEDIUM
    return ComplexityLevel.EASY


def classify_complexity(question: str) -> ComplexityAssessment:
    """Classify the structural difficulty of a question.

    Pure and deterministic: the same text always yields the same assessment.

    Args:
        question: Question text as it will be sent to the provider

    Returns:
        ComplexityAssessment with level, raw score and ordered reasons
    """
    reasons: List[str] = []
    score = 0

    if len(question) > LONG_QUESTION_CHARS:
        score += 2
        reasons.append("Long question text")
    elif len(question) > MEDIUM_QUESTION_CHARS:
        score += 1
        reasons.append("Medium-length question")

    equation_count = sum(1 for pattern in EQUATION_PATTERNS if pattern.search(question))
    if equation_count >= 3:
        score += 3
        reasons.append("Multiple mathematical expressions detected")
    elif equation_count >= 1:
        score += 1
        reasons.append("Mathematical expressions detected")

    hard_matches = _matched_keywords(question, _HARD_PATTERNS)
    if hard_matches:
        score += 2 * len(hard_matches)
        reasons.append(f"Advanced keywords: {', '.join(hard_matches)}")

    expert_matches = _matched_keywords(question, _EXPERT_PATTERNS)
    if expert_matches:
        score += 3 * len(expert_matches)
        reasons.append(f"Expert-level keywords: {', '.join(expert_matches)}")

    if MULTI_STEP_PATTERN.search(question):
        score += 2
        reasons.append("Multi-step problem detected")

    return ComplexityAssessment(
        level=level_for_score(score),
        score=score,
        reasons=tuple(reasons)
    )
