"""Completion percentage for an in-progress submission."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def answered_count(answers: Mapping[str, Any]) -> int:
    # Presence is what counts: "", 0, False and None are all answers.
    return len(answers)


def percent(answered: int, total: int) -> int:
    """round(100 * answered / total), half up, clamped to [0, 100].

    An assessment with no questions reports 0.
    """
    if total <= 0:
        return 0
    raw = math.floor(100 * answered / total + 0.5)
    return max(0, min(100, raw))
