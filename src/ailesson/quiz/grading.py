"""Answer grading for TEXT, SINGLE and MULTIPLE questions."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def _as_option(value: Any, options: Sequence[str] | None) -> str:  # noqa: ANN401
    """Resolve an option index to its text; option texts pass through."""
    if isinstance(value, int) and not isinstance(value, bool) and options and 0 <= value < len(options):
        return options[value]
    return str(value).strip()


def check_answer(
    question_type: str,
    correct_answer: Any,  # noqa: ANN401
    answer: Any,  # noqa: ANN401
    options: Sequence[str] | None = None,
) -> bool:
    """True if ``answer`` matches ``correct_answer``.

    TEXT compares trimmed, case-insensitive strings. SINGLE and MULTIPLE
    accept either option indices or option texts; MULTIPLE ignores order.
    """
    if answer is None:
        return False

    if question_type == "TEXT":
        return str(answer).strip().lower() == str(correct_answer).strip().lower()

    if question_type == "SINGLE":
        if isinstance(answer, list):
            return False
        return _as_option(answer, options) == _as_option(correct_answer, options)

    if question_type == "MULTIPLE":
        expected = correct_answer if isinstance(correct_answer, list) else [correct_answer]
        given = answer if isinstance(answer, list) else [answer]
        if len(given) != len(expected):
            return False
        return sorted(_as_option(a, options) for a in given) == sorted(_as_option(e, options) for e in expected)

    return False
