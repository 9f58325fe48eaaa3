"""Text normalization and name scrubbing shared by the party heuristics.

All pattern matching in ``partymark.parties`` relies on the output guarantees of
:func:`normalize_text`: no ``\\r`` characters and no runs of horizontal
whitespace.
"""

from __future__ import annotations

import re


_LINE_ENDING_RE = re.compile(r"\r\n?")
_HORIZONTAL_WS_RE = re.compile(r"[^\S\n]+")
_BETWEEN_RE = re.compile(r"\b(?:by and )?between\b", re.IGNORECASE)
_EDGE_PUNCT_RE = re.compile(r"^[,;:\-\s]+|[,;:\-\s]+$")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_WRAPPING_QUOTE_RE = re.compile("^[“\"']|[”\"']$")


def normalize_text(raw: str) -> str:
    """Normalize line endings and horizontal whitespace.

    1. CRLF and CR become LF.
    2. Any run of whitespace other than LF becomes one space.
    3. Leading/trailing whitespace is trimmed.
    """
    text = _LINE_ENDING_RE.sub("\n", raw or "")
    text = _HORIZONTAL_WS_RE.sub(" ", text)
    return text.strip()


def strip_quotes(s: str) -> str:
    """Drop one wrapping quote character at each end, then trim."""
    return _WRAPPING_QUOTE_RE.sub("", s).strip()


def scrub_name(fragment: str) -> str:
    """Clean a captured name fragment.

    Removes a stray "between"/"by and between", edge punctuation, doubled
    spaces and wrapping quotes. May return an empty string.
    """
    x = _BETWEEN_RE.sub("", fragment, count=1)
    x = _EDGE_PUNCT_RE.sub("", x)
    x = _MULTI_SPACE_RE.sub(" ", x)
    return strip_quotes(x)


def name_key(name: str) -> str:
    """Case-insensitive, whitespace-normalized identity of a party name."""
    return " ".join(name.split()).lower()
