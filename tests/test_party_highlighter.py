"""Tests for scripts/party_highlighter.py — the command-line driver."""
from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from docx import Document

from partymark.docx_document import DocxDocument
from scripts.party_highlighter import default_state_path, main

TAG = "AI_PARTY_HL"


@pytest.fixture()
def docx_path(tmp_path: Path) -> Path:
    doc = Document()
    doc.add_paragraph(
        'This Agreement is made by and between Acme Inc. (the "Company") and John Doe, '
        "an individual."
    )
    doc.add_paragraph("The Company shall deliver the goods to John Doe.")
    path = tmp_path / "contract.docx"
    doc.save(str(path))
    return path


def _run(argv: list[str], capsys: pytest.CaptureFixture[str]) -> tuple[int, dict]:
    code = main(argv)
    out = capsys.readouterr().out
    return code, orjson.loads(out)


class TestCli:
    def test_detect(self, docx_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, payload = _run([str(docx_path), "detect"], capsys)
        assert code == 0
        assert payload["parties"] == [
            {"name": "Acme Inc.", "role": "Company"},
            {"name": "John Doe"},
        ]
        assert payload["selected"] == "Acme Inc."
        assert default_state_path(docx_path).exists()

    def test_highlight_then_reset(
        self, docx_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        state = str(tmp_path / "state.duckdb")
        _run([str(docx_path), "--state", state, "detect"], capsys)

        code, payload = _run([str(docx_path), "--state", state, "highlight"], capsys)
        assert code == 0
        assert payload["total_hits"] > 0
        assert len(DocxDocument(docx_path).annotations(TAG)) == payload["total_hits"]

        clean = tmp_path / "clean.docx"
        code, payload = _run(
            [str(docx_path), "--state", state, "--out", str(clean), "reset"], capsys
        )
        assert code == 0
        assert payload["selected"] is None
        assert DocxDocument(clean).annotations(TAG) == []

    def test_add_and_select(self, docx_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        state = str(tmp_path / "state.duckdb")
        code, payload = _run([str(docx_path), "--state", state, "add", "Beta LLC"], capsys)
        assert code == 0
        assert payload["selected"] == "Beta LLC"
        code, payload = _run([str(docx_path), "--state", state, "show"], capsys)
        assert payload["status"] == "Ready."
        assert payload["parties"] == [{"name": "Beta LLC"}]

    def test_missing_document(self, tmp_path: Path) -> None:
        assert main([str(tmp_path / "missing.docx"), "detect"]) == 1

    def test_bad_config(self, docx_path: Path, tmp_path: Path) -> None:
        config = tmp_path / "config.json"
        config.write_bytes(b'{"batch_size": 0}')
        assert main([str(docx_path), "--config", str(config), "detect"]) == 1

    def test_bad_colour_in_environment(
        self, docx_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PARTYMARK_HIGHLIGHT_COLOR", "SKY")
        assert main([str(docx_path), "highlight", "--party", "Acme Inc."]) == 1
        assert DocxDocument(docx_path).annotations(TAG) == []
