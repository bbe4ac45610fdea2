"""Food name canonicalization shared by every matching component."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9 ]")


def normalize(raw: str | None) -> str:
    """Return the FoodName key for a free-text food name.

    Lower-cases, folds accents ("jalapeño" -> "jalapeno"), strips every
    character outside ``[a-z0-9 ]`` and collapses whitespace runs to a
    single space. Never raises; ``None`` and non-strings normalize to "".

    No stemming is done: "egg" and "eggs" are different keys.
    """
    if not isinstance(raw, str):
        return ""
    text = unicodedata.normalize("NFKD", raw)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _WHITESPACE.sub(" ", text.lower())
    text = _DISALLOWED.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()
