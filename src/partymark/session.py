"""Presentation adapter: the user-facing operations of the highlighter pane.

Wraps detection, manual entry, selection, highlight and reset around a
document host and a settings store. Every operation returns an
:class:`OperationResult` carrying the status line and the state a UI needs to
render; nothing here touches view objects.

Operations must not overlap. A call made while another is in flight raises
:class:`OperationInProgressError`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from partymark.config import EngineConfig
from partymark.host import DocumentHost, HostError
from partymark.marker import ReferenceMarker
from partymark.parties import Party, dedupe_parties, detect_parties, find_party
from partymark.settings import SessionState, SessionStore, SettingsCommitError, SettingsStore

log = logging.getLogger(__name__)


class OperationInProgressError(RuntimeError):
    """Raised when an operation starts while another is still running."""


@dataclass(slots=True)
class OperationResult:
    ok: bool
    status: str
    parties: list[Party] = field(default_factory=list)
    selected: str | None = None
    total_hits: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "status": self.status,
            "parties": [p.to_dict() for p in self.parties],
            "selected": self.selected,
            "total_hits": self.total_hits,
            "warnings": list(self.warnings),
        }


class HighlightSession:
    """Stateful glue between a document, its settings and the engine."""

    def __init__(
        self,
        host: DocumentHost,
        store: SettingsStore,
        *,
        config: EngineConfig | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self.host = host
        self.config = config or EngineConfig()
        self.state_store = SessionStore(store)
        self.marker = ReferenceMarker(host, self.config)
        self.on_progress = on_progress
        self._busy = False
        self.state: SessionState = self.state_store.load()

    @contextmanager
    def _operation(self, message: str) -> Iterator[None]:
        if self._busy:
            raise OperationInProgressError("Another operation is still running")
        self._busy = True
        try:
            self._progress(message)
            yield
        finally:
            self._busy = False

    def _progress(self, message: str) -> None:
        log.debug(message)
        if self.on_progress is not None:
            self.on_progress(message)

    def _result(
        self,
        ok: bool,
        status: str,
        *,
        total_hits: int = 0,
        warnings: list[str] | None = None,
    ) -> OperationResult:
        return OperationResult(
            ok=ok,
            status=status,
            parties=list(self.state.parties),
            selected=self.state.selected_party_name,
            total_hits=total_hits,
            warnings=list(warnings or []),
        )

    def _save_parties(self, warnings: list[str]) -> None:
        try:
            self.state_store.save_parties(self.state.parties)
        except SettingsCommitError as exc:
            log.warning("Could not save parties: %s", exc)
            warnings.append("Could not save the party list.")

    def _save_selected(self, warnings: list[str]) -> None:
        try:
            self.state_store.save_selected(self.state.selected_party_name)
        except SettingsCommitError as exc:
            log.warning("Could not save selection: %s", exc)
            warnings.append("Could not save the selected party.")

    @staticmethod
    def _with_warnings(status: str, warnings: list[str]) -> str:
        return " ".join([status, *warnings]) if warnings else status

    # -- operations -------------------------------------------------------

    def start(self) -> OperationResult:
        """Show stored parties, or detect when none are stored yet."""
        if self.state.parties:
            return self._result(True, "Ready.")
        return self.detect()

    def detect(self) -> OperationResult:
        warnings: list[str] = []
        with self._operation("Detecting parties…"):
            try:
                head = self.host.read_text(self.config.read_text_limit)
                parties = detect_parties(
                    head,
                    max_parties=self.config.max_parties,
                    max_lines=self.config.org_scan_lines,
                )
            except (HostError, re.error, ValueError) as exc:
                log.warning("Party detection failed: %s", exc)
                return self._result(False, "Detection failed. Add manually or try again.")

            self.state.parties = parties
            self.state.selected_party_name = parties[0].name if parties else None
            self._save_parties(warnings)
            self._save_selected(warnings)

        if parties:
            status = f"Detected {len(parties)} party(ies)."
        else:
            status = "No parties detected. Add one manually."
        return self._result(True, self._with_warnings(status, warnings), warnings=warnings)

    def add_party(self, name: str) -> OperationResult:
        name = (name or "").strip()
        if not name:
            return self._result(True, "Enter a party name to add.")
        warnings: list[str] = []
        with self._operation("Adding party…"):
            party = find_party(self.state.parties, name) or Party(name)
            self.state.parties = dedupe_parties([*self.state.parties, party])
            self.state.selected_party_name = party.name
            self._save_parties(warnings)
            self._save_selected(warnings)
        status = f"Selected party: {party.name}"
        return self._result(True, self._with_warnings(status, warnings), warnings=warnings)

    def select(self, name: str | None) -> OperationResult:
        warnings: list[str] = []
        with self._operation("Selecting party…"):
            self.state.selected_party_name = (name or "").strip() or None
            self._save_selected(warnings)
        status = (
            f"Selected party: {self.state.selected_party_name}"
            if self.state.selected_party_name
            else "Party selection cleared."
        )
        return self._result(True, self._with_warnings(status, warnings), warnings=warnings)

    def highlight(self, name: str | None = None) -> OperationResult:
        selected = (name or self.state.selected_party_name or "").strip()
        if not selected:
            return self._result(True, "Pick a party first.")

        warnings: list[str] = []
        with self._operation("Clearing previous highlights…"):
            party = find_party(self.state.parties, selected) or Party(selected)
            self.state.selected_party_name = party.name
            self._save_selected(warnings)
            try:
                result = self.marker.highlight(party, on_progress=self._progress)
            except HostError as exc:
                log.warning("Highlighting failed: %s", exc)
                return self._result(False, "Highlighting failed. Try again.")

        status = f"Highlighted {result.total_hits} occurrence(s) for {party.name}."
        return self._result(
            True,
            self._with_warnings(status, warnings),
            total_hits=result.total_hits,
            warnings=warnings,
        )

    def reset(self) -> OperationResult:
        warnings: list[str] = []
        with self._operation("Removing highlights…"):
            try:
                self.marker.clear_all()
            except HostError as exc:
                log.warning("Reset failed: %s", exc)
                return self._result(False, "Could not remove highlights. Try again.")
            self.state.selected_party_name = None
            self._save_selected(warnings)
        status = "All highlights removed. Party selection cleared."
        return self._result(True, self._with_warnings(status, warnings), warnings=warnings)
