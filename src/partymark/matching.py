"""Regex compilation of search terms under :class:`SearchOptions`.

Shared by the text and docx hosts so both resolve a term to the same spans.
Tolerant matching relaxes only the separators the term already has: a space
in the term may match any run of spaces and punctuation, so ``the Company``
also finds ``the  Company`` and ``the-Company``; punctuation in the term may
match any run of punctuation (never whitespace), so ``Acme Inc's`` finds
``Acme Inc.'s`` and ``Acme Inc’s`` but not ``Acme Inc shall``. Words are
never split.
"""

from __future__ import annotations

import re
from functools import lru_cache

from partymark.host import SearchOptions

_TOKEN_RE = re.compile(r"\w+|\s+|[^\w\s]+")
_WORD_RE = re.compile(r"\w+")

_SPACE_BOTH = r"[\W_]*"
_SPACE_SPACING = r"\s*"
_SPACE_PUNCT = r"[^\w\s]*\s+[^\w\s]*"
_SPACE_STRICT = r"\s+"
_PUNCT_GAP = r"[^\w\s]*"


def _space_for(options: SearchOptions) -> str:
    if options.tolerant_punctuation and options.tolerant_spacing:
        return _SPACE_BOTH
    if options.tolerant_spacing:
        return _SPACE_SPACING
    if options.tolerant_punctuation:
        return _SPACE_PUNCT
    return _SPACE_STRICT


@lru_cache(maxsize=512)
def compile_term(term: str, options: SearchOptions) -> re.Pattern[str] | None:
    """Compile *term* into a pattern, or None when nothing matchable remains."""
    tokens = _TOKEN_RE.findall(" ".join(term.split()))
    if options.tolerant_punctuation:
        # Edge punctuation is dropped so it cannot swallow a neighbouring comma.
        while tokens and not _WORD_RE.fullmatch(tokens[0]):
            tokens.pop(0)
        while tokens and not _WORD_RE.fullmatch(tokens[-1]):
            tokens.pop()
    if not tokens:
        return None

    pieces: list[str] = []
    for tok in tokens:
        if tok.isspace():
            pieces.append(_space_for(options))
        elif _WORD_RE.fullmatch(tok):
            pieces.append(re.escape(tok))
        elif options.tolerant_punctuation:
            pieces.append(_PUNCT_GAP)
        else:
            pieces.append(re.escape(tok))

    body = "".join(pieces)
    if options.whole_word:
        body = r"(?<!\w)" + body + r"(?!\w)"
    flags = re.IGNORECASE if options.case_insensitive else 0
    return re.compile(body, flags)


def find_spans(text: str, term: str, options: SearchOptions) -> list[tuple[int, int]]:
    """Return non-overlapping ``(start, end)`` spans of *term* in *text*."""
    pattern = compile_term(term, options)
    if pattern is None:
        return []
    return [m.span() for m in pattern.finditer(text) if m.end() > m.start()]
