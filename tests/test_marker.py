"""Tests for partymark.marker — batching, noise cap, fallback, idempotence."""
from __future__ import annotations

from partymark.config import EngineConfig
from partymark.host import SearchOptions
from partymark.marker import ReferenceMarker, highlight_party, reset_highlights, reverse_batches
from partymark.parties import Party
from partymark.text_document import TextDocument

TAG = EngineConfig().tag

CONTRACT_TEXT = (
    'This Agreement is made between Acme Inc. (the "Client") and John Doe, an individual.\n'
    "The Client shall pay John Doe. Acme Inc's payment is due monthly, and it shall "
    "not assign its rights. THE CLIENT binds itself."
)


class TestReverseBatches:
    def test_last_to_first(self) -> None:
        assert list(reverse_batches(list(range(5)), 2)) == [[4, 3], [2, 1], [0]]

    def test_empty(self) -> None:
        assert list(reverse_batches([], 60)) == []


class TestNoiseCap:
    def test_short_term_over_cap_skipped(self) -> None:
        doc = TextDocument(" ".join(["it"] * 300))
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("it", True) == 0
        assert doc.annotations(TAG) == []
        assert doc.commit_count == 0

    def test_short_term_under_cap_marked(self) -> None:
        doc = TextDocument(" ".join(["it"] * 250))
        assert ReferenceMarker(doc).search_and_mark("it", True) == 250

    def test_long_term_never_capped(self) -> None:
        doc = TextDocument(" ".join(["alpha"] * 300))
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("alpha", True) == 300
        assert len(doc.annotations(TAG)) == 300
        assert doc.commit_count == 5

    def test_configurable_cap(self) -> None:
        doc = TextDocument(" ".join(["it"] * 20))
        marker = ReferenceMarker(doc, EngineConfig(noise_cap=10))
        assert marker.search_and_mark("it", True) == 0


class TestBatchFallback:
    def test_one_invalid_range_in_batch(self) -> None:
        doc = TextDocument(" ".join(["Acme Inc"] * 60))
        doc.invalidate(9 * 7, 9 * 7 + 8)
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("Acme Inc", True) == 59
        assert len(doc.annotations(TAG)) == 59
        # one failed batch commit + one commit per range
        assert doc.commit_count == 61

    def test_later_batches_continue(self) -> None:
        doc = TextDocument(" ".join(["Acme Inc"] * 120))
        doc.invalidate(9 * 100, 9 * 100 + 8)
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("Acme Inc", True) == 119
        assert doc.commit_count == 1 + 60 + 1

    def test_overlap_with_existing_annotation_skipped(self) -> None:
        doc = TextDocument("the Client's fee and the Client's duty")
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("the Client", True) == 2
        # "Client's" crosses the end of "the Client" in both places
        assert marker.search_and_mark("Client's", False) == 0
        assert doc.marked_spans(TAG) == [(0, 10), (21, 31)]

    def test_uses_configured_tag_and_style(self) -> None:
        doc = TextDocument("Acme Inc")
        config = EngineConfig(tag="MINE", highlight_color="YELLOW")
        ReferenceMarker(doc, config).search_and_mark("Acme Inc", True)
        assert [(a.tag, a.style) for a in doc.annotations("MINE")] == [("MINE", "YELLOW")]


class TestClearAll:
    def test_no_annotations_is_noop(self) -> None:
        doc = TextDocument("Acme Inc")
        assert ReferenceMarker(doc).clear_all() == 0
        assert doc.commit_count == 0

    def test_only_engine_tag_removed(self) -> None:
        doc = TextDocument("Acme Inc and Beta LLC")
        ReferenceMarker(doc).search_and_mark("Acme Inc", True)
        other = doc.search("Beta LLC", SearchOptions())[0]
        doc.annotate(other, "OTHER", "YELLOW")
        doc.commit()
        assert reset_highlights(doc) == 1
        assert doc.annotations(TAG) == []
        assert len(doc.annotations("OTHER")) == 1


class TestHighlight:
    def test_idempotent(self) -> None:
        doc = TextDocument(CONTRACT_TEXT)
        party = Party("Acme Inc.", "Client")
        first = highlight_party(doc, party)
        first_spans = doc.marked_spans(TAG)
        second = highlight_party(doc, party)
        assert second.total_hits == first.total_hits
        assert doc.marked_spans(TAG) == first_spans
        assert second.cleared == len(first_spans)
        reset_highlights(doc)
        assert doc.annotations(TAG) == []

    def test_marks_name_alias_and_pronouns(self) -> None:
        doc = TextDocument(CONTRACT_TEXT)
        result = highlight_party(doc, Party("Acme Inc.", "Client"))
        marked = {CONTRACT_TEXT[s:e] for s, e in doc.marked_spans(TAG)}
        assert "Acme Inc" in marked
        assert "Acme Inc's" in marked
        assert "The Client" in marked
        assert "THE CLIENT" in marked
        assert "its" in marked
        assert "itself" in marked
        assert result.total_hits == sum(result.term_counts.values())
        assert result.total_hits == len(doc.annotations(TAG))

    def test_switching_party_clears_previous(self) -> None:
        doc = TextDocument("Acme Inc and John Doe")
        assert highlight_party(doc, Party("Acme Inc")).total_hits == 1
        assert doc.marked_spans(TAG) == [(0, 8)]
        result = highlight_party(doc, Party("John Doe", "Contractor"))
        assert result.total_hits == 1
        assert doc.marked_spans(TAG) == [(13, 21)]

    def test_skipped_terms_reported(self) -> None:
        doc = TextDocument("Acme " + " ".join(["it"] * 300))
        result = highlight_party(doc, Party("Acme"))
        assert "it" in result.skipped_terms
        assert result.term_counts["it"] == 0
        assert result.term_counts["Acme"] == 1

    def test_progress_callback(self) -> None:
        doc = TextDocument("Acme Inc")
        messages: list[str] = []
        result = highlight_party(doc, Party("Acme Inc", "Client"), on_progress=messages.append)
        assert len(messages) == len(result.term_counts) == 13
        assert messages[0].startswith("Highlighting “")
        assert messages[-1].endswith("(13/13)…")


class TestPossessiveHits:
    def test_no_possessive_hit_on_following_word(self) -> None:
        doc = TextDocument("The Client shall pay. Acme Inc shall deliver.")
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("the Client's", False) == 0
        assert marker.search_and_mark("Acme Inc's", False) == 0
        assert doc.annotations(TAG) == []

    def test_real_possessive_marked(self) -> None:
        doc = TextDocument("Acme Inc.'s fee and Acme Inc’s duty")
        assert ReferenceMarker(doc).search_and_mark("Acme Inc's", False) == 2
        assert [doc.text[s:e] for s, e in doc.marked_spans(TAG)] == ["Acme Inc.'s", "Acme Inc’s"]


class TestSameSpanOnce:
    def test_case_variants_counted_once(self) -> None:
        doc = TextDocument("The Client pays. The CLIENT signs.")
        result = highlight_party(doc, Party("Acme", "Client"))
        spans = doc.marked_spans(TAG)
        assert spans == [(0, 10), (4, 10), (17, 27), (21, 27)]
        assert result.total_hits == 4
        assert result.term_counts["the Client"] == 2
        assert result.term_counts["the CLIENT"] == 0
        assert result.term_counts["Client"] == 2
        assert result.term_counts["CLIENT"] == 0

    def test_clear_forgets_marked_spans(self) -> None:
        doc = TextDocument("The Client pays.")
        marker = ReferenceMarker(doc)
        assert marker.search_and_mark("Client", True) == 1
        assert marker.search_and_mark("CLIENT", True) == 0
        assert marker.clear_all() == 1
        assert marker.search_and_mark("CLIENT", True) == 1
