import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")
_SPACING_RE = re.compile(r"\\(?:qquad|quad)(?![a-zA-Z])|\\[,;:!]")
_SIZING_RE = re.compile(r"\\(?:left|right)(?![a-zA-Z])", re.IGNORECASE)

_OPERATOR_REPLACEMENTS = (
    (re.compile(r"\\(?:times|cdot|ast)(?![a-zA-Z])", re.IGNORECASE), "*"),
    (re.compile(r"\\div(?![a-zA-Z])", re.IGNORECASE), "/"),
    (re.compile("[×·⋅∗]"), "*"),
    (re.compile("÷"), "/"),
    (re.compile("[−–]"), "-"),
)

NAMED_COMMANDS = (
    "sin",
    "cos",
    "tan",
    "sec",
    "csc",
    "cot",
    "arcsin",
    "arccos",
    "arctan",
    "sinh",
    "cosh",
    "tanh",
    "log",
    "ln",
    "exp",
    "pi",
    "theta",
    "alpha",
    "beta",
    "gamma",
    "delta",
    "lambda",
    "mu",
    "sigma",
    "phi",
    "omega",
)
_NAMED_COMMAND_RE = re.compile(
    r"\\(" + "|".join(NAMED_COMMANDS) + r")(?![a-zA-Z])",
    re.IGNORECASE,
)


def _normalize_once(value: str) -> str:
    value = _SPACING_RE.sub("", value)
    for pattern, replacement in _OPERATOR_REPLACEMENTS:
        value = pattern.sub(replacement, value)
    value = _NAMED_COMMAND_RE.sub(lambda match: match.group(1), value)
    value = _SIZING_RE.sub("", value)
    value = _WHITESPACE_RE.sub("", value)
    return value.lower()


def normalize(expr: Optional[str]) -> str:
    """Collapse presentation differences in a LaTeX-like expression.

    This only removes notation noise (spacing, operator spellings, escaped
    function names, sizing commands, case). It does not try to prove that two
    expressions are mathematically equal.

    Rewrites can expose a new match (``\\\\sin(x)`` becomes ``\\sin(x)``), so passes
    are repeated until the string stops changing. Passes only delete text or
    swap symbols for ASCII tokens, so the loop ends.
    """
    if not expr:
        return ""
    current = str(expr)
    while True:
        updated = _normalize_once(current)
        if updated == current:
            return updated
        current = updated
