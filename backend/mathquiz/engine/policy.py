import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Union

# Share of a question's marks available for correct working when the final
# answer is wrong.
METHOD_MARK_WEIGHT = 0.7
INFER_FINAL_ANSWER_FROM_STEPS = True


@dataclass(frozen=True)
class ScoringPolicy:
    method_mark_weight: float = METHOD_MARK_WEIGHT
    infer_final_answer_from_steps: bool = INFER_FINAL_ANSWER_FROM_STEPS


DEFAULT_POLICY = ScoringPolicy()


def round_half_up(value: Union[Fraction, float, int]) -> int:
    """Round .5 away from zero for non-negative values, like ``Math.round``.

    Python's ``round`` rounds half to even, which would turn 1.5 marks into 2
    but 2.5 marks into 2 as well.
    """
    return int(math.floor(Fraction(value) + Fraction(1, 2)))


def proportional_marks(max_marks: int, correct: int, total: int, weight: Union[float, int] = 1) -> int:
    if total <= 0 or correct <= 0:
        return 0
    share = Fraction(max_marks) * Fraction(str(weight)) * Fraction(correct, total)
    return max(0, min(max_marks, round_half_up(share)))


def percentage(awarded: int, maximum: int) -> int:
    if maximum <= 0:
        return 0
    return round_half_up(Fraction(100 * awarded, maximum))
