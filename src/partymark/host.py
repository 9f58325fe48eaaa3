"""Document-host contract used by the reference marker.

A host exposes staged document edits plus an explicit ``commit()``. Nothing
staged is observable until the commit succeeds; a failed commit raises
:class:`HostError` and discards everything staged since the last commit.

Ranges returned by :meth:`DocumentHost.search` are valid only until the next
document mutation, so callers consume them immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Protocol


DEFAULT_TAG = "AI_PARTY_HL"
DEFAULT_HIGHLIGHT = "TURQUOISE"

# Terms up to this length match strictly and are subject to the noise cap.
SHORT_TERM_MAX_LEN = 3


class HostError(RuntimeError):
    """Raised when a host round-trip (commit) fails."""


class RangeInvalidError(HostError):
    """Raised when a staged range overlaps another or no longer exists."""


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Explicit search configuration passed to the host."""

    case_insensitive: bool = True
    whole_word: bool = True
    tolerant_punctuation: bool = False
    tolerant_spacing: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, bool):
                raise TypeError(
                    f"SearchOptions.{f.name} must be bool, got {type(value).__name__}"
                )

    @property
    def tolerant(self) -> bool:
        return self.tolerant_punctuation or self.tolerant_spacing

    @classmethod
    def for_term(
        cls,
        term: str,
        *,
        whole_word: bool,
        short_term_max_len: int = SHORT_TERM_MAX_LEN,
    ) -> SearchOptions:
        """Case-insensitive options; tolerant only for terms longer than 3 chars."""
        tolerant = len(term) > short_term_max_len
        return cls(
            case_insensitive=True,
            whole_word=whole_word,
            tolerant_punctuation=tolerant,
            tolerant_spacing=tolerant,
        )


class DocumentHost(Protocol):
    """Collaborator interface every document backend implements."""

    def read_text(self, max_chars: int) -> str:
        """Return up to *max_chars* of body text from the start."""
        ...

    def search(self, term: str, options: SearchOptions) -> list[Any]:
        """Return hashable range handles for every match, in document order.

        Handles for the same span compare equal, whichever term found them.
        """
        ...

    def annotate(self, rng: Any, tag: str, style: str) -> None:
        """Stage wrapping *rng* in a tagged unit with highlight *style*."""
        ...

    def annotations(self, tag: str) -> list[Any]:
        """Return handles of committed annotations carrying *tag*."""
        ...

    def clear_style(self, annotation: Any) -> None:
        """Stage removal of the highlight style from *annotation*."""
        ...

    def remove_annotations(self, tag: str) -> int:
        """Stage unwrapping every annotation carrying *tag*; return the count."""
        ...

    def commit(self) -> None:
        """Apply staged edits atomically or raise :class:`HostError`."""
        ...
