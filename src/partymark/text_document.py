"""In-memory plain-text document host.

Holds the annotation set for a fixed text. Edits are staged and applied on
``commit()`` all-or-nothing, which mirrors a batched editor round-trip:

* an annotation may nest inside (or coincide with) another one,
* an annotation that partially crosses another is rejected,
* ranges marked via :meth:`TextDocument.invalidate` are rejected, standing in
  for ranges the editor no longer recognizes.

Annotations never change the text, so positions do not shift and ranges may
be applied in any order.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from partymark.host import RangeInvalidError, SearchOptions
from partymark.matching import find_spans


@dataclass(frozen=True, slots=True)
class TextRange:
    start: int
    end: int
    text: str


@dataclass(frozen=True, slots=True)
class TextAnnotation:
    start: int
    end: int
    tag: str
    style: str | None


@dataclass(frozen=True, slots=True)
class _PendingOp:
    kind: Literal["annotate", "clear_style", "remove"]
    start: int = 0
    end: int = 0
    tag: str = ""
    style: str | None = None


def _crosses(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True when two spans overlap without one containing the other."""
    if a_end <= b_start or b_end <= a_start:
        return False
    a_in_b = b_start <= a_start and a_end <= b_end
    b_in_a = a_start <= b_start and b_end <= a_end
    return not (a_in_b or b_in_a)


class TextDocument:
    """Document host over a plain string."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._annotations: list[TextAnnotation] = []
        self._pending: list[_PendingOp] = []
        self._invalid: set[tuple[int, int]] = set()
        self.commit_count = 0

    @property
    def text(self) -> str:
        return self._text

    # -- reads ------------------------------------------------------------

    def read_text(self, max_chars: int) -> str:
        return self._text[: max(0, max_chars)]

    def search(self, term: str, options: SearchOptions) -> list[TextRange]:
        return [
            TextRange(start, end, self._text[start:end])
            for start, end in find_spans(self._text, term, options)
        ]

    def annotations(self, tag: str) -> list[TextAnnotation]:
        return [a for a in self._annotations if a.tag == tag]

    def marked_spans(self, tag: str) -> list[tuple[int, int]]:
        """Sorted committed spans for *tag* (test/report helper)."""
        return sorted((a.start, a.end) for a in self.annotations(tag))

    # -- staged writes ----------------------------------------------------

    def annotate(self, rng: TextRange, tag: str, style: str) -> None:
        self._pending.append(_PendingOp("annotate", rng.start, rng.end, tag, style))

    def clear_style(self, annotation: TextAnnotation) -> None:
        self._pending.append(
            _PendingOp("clear_style", annotation.start, annotation.end, annotation.tag)
        )

    def remove_annotations(self, tag: str) -> int:
        self._pending.append(_PendingOp("remove", tag=tag))
        return len(self.annotations(tag))

    def invalidate(self, start: int, end: int) -> None:
        """Make any later annotation of exactly ``[start, end)`` fail."""
        self._invalid.add((start, end))

    def discard(self) -> None:
        self._pending.clear()

    def commit(self) -> None:
        self.commit_count += 1
        pending, self._pending = self._pending, []
        working = list(self._annotations)
        for op in pending:
            if op.kind == "annotate":
                self._check_range(op, working)
                working.append(TextAnnotation(op.start, op.end, op.tag, op.style))
            elif op.kind == "clear_style":
                working = [
                    replace(a, style=None)
                    if (a.start, a.end, a.tag) == (op.start, op.end, op.tag)
                    else a
                    for a in working
                ]
            else:
                working = [a for a in working if a.tag != op.tag]
        self._annotations = working

    def _check_range(self, op: _PendingOp, working: list[TextAnnotation]) -> None:
        if not (0 <= op.start < op.end <= len(self._text)):
            raise RangeInvalidError(f"range {op.start}:{op.end} is out of bounds")
        if (op.start, op.end) in self._invalid:
            raise RangeInvalidError(f"range {op.start}:{op.end} is no longer valid")
        for a in working:
            if _crosses(op.start, op.end, a.start, a.end):
                raise RangeInvalidError(
                    f"range {op.start}:{op.end} overlaps annotation {a.start}:{a.end}"
                )
