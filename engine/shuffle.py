"""Question and option ordering."""
from __future__ import annotations

import random
from typing import Sequence

from engine.models import Question


def generate_permutation(n: int, rng: random.Random | None = None) -> list[int]:
    """Return an unbiased Fisher-Yates permutation of ``range(n)``."""
    if n < 0:
        raise ValueError("n must be non-negative")
    rng = rng or random
    values = list(range(n))
    for i in range(n - 1, 0, -1):
        j = rng.randint(0, i)
        values[i], values[j] = values[j], values[i]
    return values


def generate_option_orders(
    questions: Sequence[Question],
    selected_length: int,
    rng: random.Random | None = None,
) -> list[list[int]]:
    """One option permutation per selected question, in natural question order."""
    return [
        generate_permutation(len(question.options), rng)
        for question in questions[:selected_length]
    ]


def is_permutation(values: object, n: int) -> bool:
    if not isinstance(values, list) or len(values) != n:
        return False
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return False
    return sorted(values) == list(range(n))
