"""Substitution ratio parsing ("2:1" -> SubstitutionRatio)."""

from __future__ import annotations

import re
from dataclasses import dataclass

_RATIO = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)\s*$")


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@dataclass(frozen=True)
class SubstitutionRatio:
    """How many units of the equivalent replace how many of the subject.

    ``2:1`` means two units of the equivalent stand in for one unit of the
    subject.
    """

    numerator: float = 1
    denominator: float = 1

    def inverted(self) -> SubstitutionRatio:
        return SubstitutionRatio(self.denominator, self.numerator)

    @property
    def factor(self) -> float:
        return self.numerator / self.denominator

    def __str__(self) -> str:
        return f"{_fmt(self.numerator)}:{_fmt(self.denominator)}"


ONE_TO_ONE = SubstitutionRatio(1, 1)


def parse_ratio(text: str | SubstitutionRatio | None) -> SubstitutionRatio | None:
    """Parse an ``"a:b"`` string.

    Returns None when the text is missing or malformed, or when either side
    is zero. Callers decide how to degrade.
    """
    if isinstance(text, SubstitutionRatio):
        return text
    if not isinstance(text, str):
        return None
    m = _RATIO.match(text)
    if m is None:
        return None
    num, den = float(m.group(1)), float(m.group(2))
    if num <= 0 or den <= 0:
        return None
    return SubstitutionRatio(
        int(num) if num.is_integer() else num,
        int(den) if den.is_integer() else den,
    )
