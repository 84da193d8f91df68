import re
from typing import List, Optional

from .normalizer import normalize

_TEXT_WRAPPER_RE = re.compile(r"\\(?:text|mathrm|textrm|mbox)\s*\{([^{}]*)\}")
_CONNECTIVE_RE = re.compile(r"\b(?:or|and)\b", re.IGNORECASE)
_OPENERS = "([{"
_CLOSERS = ")]}"


def _split_top_level_commas(segment: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in segment:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and depth > 0:
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def extract_values(expr: Optional[str]) -> List[str]:
    """Pull the answer values out of an expression or equation.

    ``"x = -2 or x = -3"`` and ``"x = -2, -3"`` both give ``["-2", "-3"]``;
    ``"5"`` gives ``["5"]``. Commas inside brackets do not split, so a point
    such as ``"(1, 2)"`` stays one value.
    """
    if not expr:
        return []
    cleaned = _TEXT_WRAPPER_RE.sub(lambda match: f" {match.group(1)} ", str(expr))
    values: List[str] = []
    for segment in _CONNECTIVE_RE.split(cleaned):
        for part in _split_top_level_commas(segment):
            if "=" in part:
                part = part.rsplit("=", 1)[1]
            part = part.strip()
            if part:
                values.append(part)
    return values


def equivalent(student: Optional[str], correct: Optional[str]) -> bool:
    """Rule-based answer matching. This is not a CAS: ``2x`` and ``x*2`` differ."""
    normalized_student = normalize(student)
    normalized_correct = normalize(correct)
    if not normalized_student or not normalized_correct:
        return False

    if normalized_student == normalized_correct:
        return True

    student_values = [normalize(value) for value in extract_values(student)]
    correct_values = [normalize(value) for value in extract_values(correct)]

    if student_values and correct_values and len(student_values) == len(correct_values):
        student_set = set(student_values)
        correct_set = set(correct_values)
        if len(student_set) != len(correct_set):
            return False
        return all(value in student_set for value in correct_set)

    candidates = {normalized_student}
    if len(student_values) == 1:
        candidates.add(student_values[0])
    return any(value in candidates for value in correct_values)
