from .aggregator import evaluate_question, evaluate_quiz
from .comparator import equivalent, extract_values
from .normalizer import normalize
from .policy import DEFAULT_POLICY, METHOD_MARK_WEIGHT, ScoringPolicy

__all__ = [
    "DEFAULT_POLICY",
    "METHOD_MARK_WEIGHT",
    "ScoringPolicy",
    "equivalent",
    "evaluate_question",
    "evaluate_quiz",
    "extract_values",
    "normalize",
]
