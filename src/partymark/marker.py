"""Batched search-and-mark of party references.

For each term the marker searches the host, drops noisy short terms, and
annotates hits in batches of ``batch_size`` with one commit per batch. A
batch whose commit fails is retried one range at a time; ranges that still
fail are skipped and not counted. A range already marked since the last
clear (the same span found by another term, e.g. "Client" and "CLIENT"
under case-insensitive search) is not marked or counted again.

Precondition: hits are annotated in position-descending order (last match
first) because wrapping a range can shift the positions of later text in
editors that insert markup inline. Hosts without positional shift (e.g.
:class:`partymark.text_document.TextDocument`) accept any order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from partymark.config import EngineConfig
from partymark.host import DocumentHost, HostError, SearchOptions
from partymark.parties import Party
from partymark.terms import is_possessive, terms_for_party

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HighlightResult:
    """Outcome of highlighting one party."""

    party: Party
    total_hits: int
    cleared: int
    term_counts: dict[str, int] = field(default_factory=dict)
    skipped_terms: tuple[str, ...] = ()


def reverse_batches(items: list[Any], size: int) -> Iterator[list[Any]]:
    """Yield *items* last-to-first in chunks of at most *size*."""
    start = len(items) - 1
    while start >= 0:
        end = max(-1, start - size)
        yield [items[i] for i in range(start, end, -1)]
        start = end


class ReferenceMarker:
    """Applies and removes the engine's tagged highlights on a host."""

    def __init__(self, host: DocumentHost, config: EngineConfig | None = None) -> None:
        self.host = host
        self.config = config or EngineConfig()
        self._skipped: list[str] = []
        self._marked: set[Any] = set()

    def is_noisy(self, term: str, hit_count: int) -> bool:
        return (
            len(term) <= self.config.short_term_max_len
            and hit_count > self.config.noise_cap
        )

    def search_and_mark(self, term: str, whole_word: bool) -> int:
        """Annotate every match of *term*; return how many were applied."""
        options = SearchOptions.for_term(
            term,
            whole_word=whole_word,
            short_term_max_len=self.config.short_term_max_len,
        )
        hits = self.host.search(term, options)
        if self.is_noisy(term, len(hits)):
            log.info(
                "Skipping %r: %d hits exceeds noise cap %d",
                term, len(hits), self.config.noise_cap,
            )
            self._skipped.append(term)
            return 0

        fresh = [rng for rng in hits if rng not in self._marked]
        applied = 0
        for batch in reverse_batches(fresh, self.config.batch_size):
            done = self._mark_batch(batch)
            self._marked.update(done)
            applied += len(done)
        log.debug(
            "Marked %d/%d hits for %r (%d already marked)",
            applied, len(hits), term, len(hits) - len(fresh),
        )
        return applied

    def _annotate(self, rng: Any) -> None:
        self.host.annotate(rng, self.config.tag, self.config.highlight_color)

    def _mark_batch(self, batch: list[Any]) -> list[Any]:
        """Annotate *batch*; return the ranges that were applied."""
        try:
            for rng in batch:
                self._annotate(rng)
            self.host.commit()
            return list(batch)
        except HostError as exc:
            log.debug("Batch of %d failed (%s); retrying per range", len(batch), exc)

        applied: list[Any] = []
        for rng in batch:
            try:
                self._annotate(rng)
                self.host.commit()
            except HostError as exc:
                log.debug("Skipping range %r: %s", rng, exc)
                continue
            applied.append(rng)
        return applied

    def clear_all(self) -> int:
        """Remove every annotation carrying the engine tag; text is untouched."""
        self._marked.clear()
        existing = self.host.annotations(self.config.tag)
        if not existing:
            return 0
        for annotation in existing:
            self.host.clear_style(annotation)
        removed = self.host.remove_annotations(self.config.tag)
        self.host.commit()
        log.debug("Removed %d annotation(s)", removed)
        return removed

    def highlight(
        self,
        party: Party,
        *,
        on_progress: Callable[[str], None] | None = None,
    ) -> HighlightResult:
        """Clear, then mark every term for *party* longest-first."""
        cleared = self.clear_all()
        self._skipped = []
        terms = terms_for_party(party)
        counts: dict[str, int] = {}
        for i, term in enumerate(terms, start=1):
            if on_progress is not None:
                on_progress(f"Highlighting “{term}” ({i}/{len(terms)})…")
            counts[term] = self.search_and_mark(term, not is_possessive(term))
        total = sum(counts.values())
        log.info("Highlighted %d occurrence(s) for %s", total, party.name)
        return HighlightResult(
            party=party,
            total_hits=total,
            cleared=cleared,
            term_counts=counts,
            skipped_terms=tuple(self._skipped),
        )


def highlight_party(
    host: DocumentHost,
    party: Party,
    *,
    config: EngineConfig | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> HighlightResult:
    """Functional entry point for :meth:`ReferenceMarker.highlight`."""
    return ReferenceMarker(host, config).highlight(party, on_progress=on_progress)


def reset_highlights(host: DocumentHost, *, config: EngineConfig | None = None) -> int:
    return ReferenceMarker(host, config).clear_all()
