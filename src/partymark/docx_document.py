"""python-docx document host.

Hits are searched per paragraph over the flattened run text. Annotating a
hit splits the runs at the hit boundaries, moves the covered runs into a
run-level content control (``w:sdt`` whose ``w:sdtPr/w:tag`` carries the
engine tag) and sets the run highlight colour. Removing an annotation moves
the runs back out of the control, so the text is preserved exactly.

A hit whose runs do not share one parent (it crosses the edge of an existing
control, a hyperlink or a field) cannot be wrapped and fails the commit.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Literal

from docx import Document
from docx.enum.text import WD_COLOR_INDEX
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.text.run import Run

from partymark.host import RangeInvalidError, SearchOptions
from partymark.matching import find_spans


_W_P = qn("w:p")
_W_R = qn("w:r")
_W_T = qn("w:t")
_W_SDT = qn("w:sdt")
_W_RPR = qn("w:rPr")
_XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"

# Run children that carry text; anything else makes a run unsplittable.
_TEXT_CHILDREN: dict[str, str] = {
    qn("w:tab"): "\t",
    qn("w:br"): "\n",
    qn("w:cr"): "\n",
    qn("w:noBreakHyphen"): "-",
}
_IGNORED_CHILDREN = frozenset({_W_RPR, qn("w:lastRenderedPageBreak")})


@dataclass(frozen=True, slots=True)
class DocxRange:
    paragraph_index: int
    start: int
    end: int
    text: str


@dataclass(frozen=True, slots=True)
class DocxAnnotation:
    element: Any  # the w:sdt element


@dataclass(frozen=True, slots=True)
class _PendingOp:
    kind: Literal["annotate", "clear_style", "remove"]
    rng: DocxRange | None = None
    element: Any = None
    tag: str = ""
    style: str = ""


# ---------------------------------------------------------------------------
# Run-level XML helpers
# ---------------------------------------------------------------------------

def _owning_paragraph(el: Any) -> Any:
    node = el.getparent()
    while node is not None and node.tag != _W_P:
        node = node.getparent()
    return node


def _paragraph_runs(p: Any) -> list[Any]:
    """Runs of *p* in order, including runs nested in controls/hyperlinks."""
    return [r for r in p.iter(_W_R) if _owning_paragraph(r) is p]


def _run_text(r: Any) -> str:
    parts: list[str] = []
    for child in r:
        if child.tag == _W_T:
            parts.append(child.text or "")
        else:
            parts.append(_TEXT_CHILDREN.get(child.tag, ""))
    return "".join(parts)


def _run_spans(p: Any) -> list[tuple[Any, int, int]]:
    spans: list[tuple[Any, int, int]] = []
    offset = 0
    for r in _paragraph_runs(p):
        length = len(_run_text(r))
        spans.append((r, offset, offset + length))
        offset += length
    return spans


def paragraph_text(p: Any) -> str:
    return "".join(_run_text(r) for r in _paragraph_runs(p))


def _is_splittable(r: Any) -> bool:
    return all(
        child.tag == _W_T or child.tag in _TEXT_CHILDREN or child.tag in _IGNORED_CHILDREN
        for child in r
    )


def _set_run_text(r: Any, text: str) -> None:
    """Replace the text content of *r*, keeping its run properties."""
    for child in list(r):
        if child.tag != _W_RPR:
            r.remove(child)
    buf: list[str] = []

    def _flush() -> None:
        if buf:
            t = OxmlElement("w:t")
            t.text = "".join(buf)
            t.set(_XML_SPACE, "preserve")
            r.append(t)
            buf.clear()

    for ch in text:
        if ch == "\t":
            _flush()
            r.append(OxmlElement("w:tab"))
        elif ch == "\n":
            _flush()
            r.append(OxmlElement("w:br"))
        else:
            buf.append(ch)
    _flush()


def _split_at(p: Any, offset: int) -> None:
    """Ensure a run boundary at *offset* within paragraph *p*."""
    for r, start, end in _run_spans(p):
        if start < offset < end:
            if not _is_splittable(r):
                raise RangeInvalidError("cannot split a run with embedded content")
            text = _run_text(r)
            left = copy.deepcopy(r)
            _set_run_text(left, text[: offset - start])
            _set_run_text(r, text[offset - start:])
            r.addprevious(left)
            return


def _common_parent(runs: list[Any], p: Any) -> Any:
    """Innermost element under *p* (or *p* itself) containing every run."""
    candidate = runs[0].getparent()
    while candidate is not p:
        if all(any(a is candidate for a in r.iterancestors()) for r in runs):
            return candidate
        candidate = candidate.getparent()
    return p


def _direct_children(runs: list[Any], parent: Any) -> list[Any]:
    """Children of *parent* holding *runs*, in order and without repeats."""
    out: list[Any] = []
    for r in runs:
        node = r
        while node.getparent() is not parent:
            node = node.getparent()
        if not out or out[-1] is not node:
            out.append(node)
    return out


def _sdt_tag(sdt: Any) -> str | None:
    pr = sdt.find(qn("w:sdtPr"))
    if pr is None:
        return None
    tag = pr.find(qn("w:tag"))
    return tag.get(qn("w:val")) if tag is not None else None


def _make_sdt(tag: str) -> Any:
    sdt = OxmlElement("w:sdt")
    pr = OxmlElement("w:sdtPr")
    tag_el = OxmlElement("w:tag")
    tag_el.set(qn("w:val"), tag)
    pr.append(tag_el)
    sdt.append(pr)
    sdt.append(OxmlElement("w:sdtContent"))
    return sdt


def highlight_for(style: str) -> WD_COLOR_INDEX:
    """Map a style name such as ``"TURQUOISE"`` to a highlight colour."""
    try:
        return WD_COLOR_INDEX[style.upper()]
    except KeyError as exc:
        raise ValueError(f"Unknown highlight colour: {style!r}") from exc


def _set_highlight(runs: list[Any], color: WD_COLOR_INDEX | None) -> None:
    for r in runs:
        Run(r, None).font.highlight_color = color  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Host
# ---------------------------------------------------------------------------

class DocxDocument:
    """Document host over a ``.docx`` file loaded with python-docx."""

    def __init__(self, source: str | Path | IO[bytes] | None = None) -> None:
        if isinstance(source, Path):
            source = str(source)
        self.document = Document(source)
        self._pending: list[_PendingOp] = []
        self.commit_count = 0

    @property
    def _body(self) -> Any:
        return self.document.element.body

    def _paragraphs(self) -> list[Any]:
        return list(self._body.iter(_W_P))

    def save(self, target: str | Path | IO[bytes]) -> None:
        self.document.save(str(target) if isinstance(target, Path) else target)

    # -- reads ------------------------------------------------------------

    def read_text(self, max_chars: int) -> str:
        text = "\n".join(paragraph_text(p) for p in self._paragraphs())
        return text[: max(0, max_chars)]

    def search(self, term: str, options: SearchOptions) -> list[DocxRange]:
        out: list[DocxRange] = []
        for idx, p in enumerate(self._paragraphs()):
            text = paragraph_text(p)
            for start, end in find_spans(text, term, options):
                out.append(DocxRange(idx, start, end, text[start:end]))
        return out

    def annotations(self, tag: str) -> list[DocxAnnotation]:
        return [
            DocxAnnotation(sdt) for sdt in self._body.iter(_W_SDT) if _sdt_tag(sdt) == tag
        ]

    # -- staged writes ----------------------------------------------------

    def annotate(self, rng: DocxRange, tag: str, style: str) -> None:
        highlight_for(style)
        self._pending.append(_PendingOp("annotate", rng=rng, tag=tag, style=style))

    def clear_style(self, annotation: DocxAnnotation) -> None:
        self._pending.append(_PendingOp("clear_style", element=annotation.element))

    def remove_annotations(self, tag: str) -> int:
        self._pending.append(_PendingOp("remove", tag=tag))
        return len(self.annotations(tag))

    def discard(self) -> None:
        self._pending.clear()

    def commit(self) -> None:
        self.commit_count += 1
        pending, self._pending = self._pending, []
        paragraphs = self._paragraphs()

        touched: set[int] = set()
        for op in pending:
            if op.kind == "annotate" and op.rng is not None:
                if not 0 <= op.rng.paragraph_index < len(paragraphs):
                    raise RangeInvalidError(
                        f"paragraph {op.rng.paragraph_index} no longer exists"
                    )
                touched.add(op.rng.paragraph_index)
            elif op.kind == "remove":
                index = {id(p): i for i, p in enumerate(paragraphs)}
                for annotation in self.annotations(op.tag):
                    owner = _owning_paragraph(annotation.element)
                    if owner is not None:
                        touched.add(index[id(owner)])
        snapshots = {idx: copy.deepcopy(paragraphs[idx]) for idx in touched}

        try:
            for op in pending:
                if op.kind == "annotate" and op.rng is not None:
                    self._wrap(paragraphs[op.rng.paragraph_index], op.rng, op.tag, op.style)
                elif op.kind == "clear_style":
                    _set_highlight(list(op.element.iter(_W_R)), None)
                elif op.kind == "remove":
                    self._unwrap_all(op.tag)
        except RangeInvalidError:
            for idx, snapshot in snapshots.items():
                current = paragraphs[idx]
                current.getparent().replace(current, snapshot)
            raise

    def _wrap(self, p: Any, rng: DocxRange, tag: str, style: str) -> None:
        if paragraph_text(p)[rng.start:rng.end] != rng.text:
            raise RangeInvalidError(f"range {rng.start}:{rng.end} no longer matches")
        _split_at(p, rng.start)
        _split_at(p, rng.end)
        covered = [
            r for r, start, end in _run_spans(p)
            if rng.start <= start and end <= rng.end and end > start
        ]
        if not covered:
            raise RangeInvalidError(f"range {rng.start}:{rng.end} covers no runs")
        parent = _common_parent(covered, p)
        members = _direct_children(covered, parent)
        covered_ids = {id(r) for r in covered}
        for member in members:
            if member.tag == _W_R:
                continue
            # A nested control or hyperlink may only be wrapped whole.
            if any(
                id(r) not in covered_ids and _run_text(r)
                for r in member.iter(_W_R)
            ):
                raise RangeInvalidError(
                    f"range {rng.start}:{rng.end} crosses a content boundary"
                )

        first = parent.index(members[0])
        last = parent.index(members[-1])
        members = list(parent)[first:last + 1]
        sdt = _make_sdt(tag)
        content = sdt.find(qn("w:sdtContent"))
        parent.insert(first, sdt)
        for el in members:
            content.append(el)
        _set_highlight(covered, highlight_for(style))

    def _unwrap_all(self, tag: str) -> None:
        # Innermost first so nested controls unwrap into their parents.
        for sdt in reversed(list(self._body.iter(_W_SDT))):
            if _sdt_tag(sdt) != tag:
                continue
            parent = sdt.getparent()
            position = parent.index(sdt)
            content = sdt.find(qn("w:sdtContent"))
            children = list(content) if content is not None else []
            for offset, child in enumerate(children):
                parent.insert(position + offset, child)
            parent.remove(sdt)
