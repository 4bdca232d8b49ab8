"""
Subject and topic classification by keyword scoring.
"""

from dataclasses import dataclass
from typing import Dict, List, Pattern, Tuple

from .complexity import keyword_pattern

GENERAL = "General"

# Declaration order breaks ties between subjects and between topics
SUBJECT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Mathematics": (
        "algebra", "calculus", "geometry", "trigonometry", "statistics",
        "probability", "matrix", "vector", "differential", "integral",
        "equation", "polynomial", "logarithm", "sequence", "series",
        "coordinate", "function", "limit", "lim", "derivative", "l'hopital",
        "sin", "cos", "tan", "permutation", "combination", "set theory",
        "number theory",
    ),
    "Physics": (
        "force", "energy", "momentum", "velocity", "acceleration",
        "gravity", "electromagnetic", "wave", "optics", "thermodynamics",
        "quantum", "nuclear", "electric", "magnetic", "circuit",
        "resistance", "capacitor", "inductor", "mechanics", "fluid",
        "sound", "light", "heat", "temperature", "pressure",
    ),
    "Chemistry": (
        "element", "compound", "reaction", "bond", "organic",
        "inorganic", "acid", "base", "oxidation", "reduction",
        "electrochemistry", "mole", "atomic", "molecular", "periodic",
        "chemical", "solution", "equilibrium", "kinetics", "polymer",
        "isomer", "functional group", "stoichiometry",
    ),
    "Biology": (
        "cell", "dna", "rna", "protein", "gene", "evolution",
        "ecology", "anatomy", "physiology", "botany", "zoology",
        "microbiology", "genetics", "enzyme", "hormone", "neuron",
        "photosynthesis", "respiration", "mitosis", "meiosis",
        "taxonomy", "biodiversity", "ecosystem",
    ),
}

TOPIC_KEYWORDS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "Mathematics": {
        "Algebra": ("equation", "polynomial", "quadratic", "linear", "variable", "expression"),
        "Calculus": ("derivative", "integral", "limit", "lim", "l'hopital", "differential", "continuity"),
        "Trigonometry": ("sin", "cos", "tan", "trigonometric", "angle", "radian"),
        "Coordinate Geometry": ("coordinate", "slope", "line", "circle", "parabola", "ellipse"),
        "Probability & Statistics": ("probability", "mean", "median", "mode", "variance", "distribution"),
    },
    "Physics": {
        "Mechanics": ("force", "newton", "momentum", "velocity", "acceleration", "friction"),
        "Thermodynamics": ("heat", "temperature", "entropy", "enthalpy", "gas law"),
        "Electromagnetism": ("electric", "magnetic", "current", "voltage", "resistance", "circuit"),
        "Optics": ("light", "lens", "mirror", "reflection", "refraction", "wave"),
        "Modern Physics": ("quantum", "nuclear", "photoelectric", "relativity", "atom"),
    },
    "Chemistry": {
        "Organic Chemistry": ("organic", "carbon", "hydrocarbon", "functional group", "isomer", "polymer"),
        "Inorganic Chemistry": ("element", "periodic", "metal", "non-metal", "coordination"),
        "Physical Chemistry": ("thermodynamics", "kinetics", "equilibrium", "electrochemistry", "solution"),
    },
    "Biology": {
        "Cell Biology": ("cell", "membrane", "organelle", "mitosis", "meiosis"),
        "Genetics": ("gene", "dna", "rna", "heredity", "mutation", "chromosome"),
        "Plant Biology": ("photosynthesis", "plant", "root", "leaf", "transpiration"),
        "Human Physiology": ("heart", "lung", "kidney", "brain", "blood", "digestion"),
        "Ecology": ("ecosystem", "food chain", "biodiversity", "habitat", "population"),
    },
}

HITS_FOR_FULL_CONFIDENCE = 3


@dataclass(frozen=True)
class TopicClassification:
    """Subject/topic assignment for a question.

    confidence is keyword-hit density, not a calibrated probability.
    """
    subject: str
    topic: str
    sub_topic: str
    confidence: float


def _compile(vocabulary: Tuple[str, ...]) -> List[Pattern[str]]:
    return [keyword_pattern(keyword) for keyword in vocabulary]


_SUBJECT_PATTERNS = {
    subject: _compile(keywords) for subject, keywords in SUBJECT_KEYWORDS.items()
}
_TOPIC_PATTERNS = {
    subject: {topic: _compile(keywords) for topic, keywords in topics.items()}
    for subject, topics in TOPIC_KEYWORDS.items()
}


def _hits(question: str, patterns: List[Pattern[str]]) -> int:
    return sum(1 for pattern in patterns if pattern.search(question))


def classify_topic(question: str) -> TopicClassification:
    """Assign a subject and topic to a question.

    Args:
        question: Question text as it will be sent to the provider

    Returns:
        TopicClassification; subject "General" with confidence 0 when no
        subject keyword matches
    """
    best_subject, best_hits = GENERAL, 0
    for subject, patterns in _SUBJECT_PATTERNS.items():
        hits = _hits(question, patterns)
        if hits > best_hits:
            best_subject, best_hits = subject, hits

    if best_hits == 0:
        return TopicClassification(
            subject=GENERAL, topic=GENERAL, sub_topic=GENERAL, confidence=0.0
        )

    topic, best_topic_hits = GENERAL, 0
    for topic_name, patterns in _TOPIC_PATTERNS.get(best_subject, {}).items():
        hits = _hits(question, patterns)
        if hits > best_topic_hits:
            topic, best_topic_hits = topic_name, hits

    return TopicClassification(
        subject=best_subject,
        topic=topic,
        # Sub-topics are not scored yet
        sub_topic=GENERAL,
        confidence=min(best_hits / HITS_FOR_FULL_CONFIDENCE, 1.0)
    )
