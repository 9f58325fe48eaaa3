"""Session-state persistence: the detected party list and the selected party.

Stores follow a get/set/commit contract. ``set`` stages a value and
``commit`` writes everything staged in one atomic round-trip, raising
:class:`SettingsCommitError` on failure.

Two stores are provided:

* :class:`MemorySettingsStore`: process-local dict.
* :class:`DuckDBSettingsStore`: ``settings(key, value)`` table in a DuckDB
  sidecar file; values are JSON-encoded with orjson.
"""

from __future__ import annotations

import contextlib
import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from partymark.io_utils import dumps, loads
from partymark.parties import Party, dedupe_parties

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

STORAGE_KEY_PARTIES = "ai.parties"
STORAGE_KEY_SELECTED = "ai.selectedParty"

SCHEMA_VERSION = "1.0"


class SettingsCommitError(RuntimeError):
    """Raised when staged settings could not be persisted."""


class SettingsStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def commit(self) -> None: ...


class MemorySettingsStore:
    """In-process store; ``fail_commits`` simulates a failing round-trip."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self._staged: dict[str, Any] = {}
        self.fail_commits = False

    def get(self, key: str) -> Any:
        if key in self._staged:
            return self._staged[key]
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._staged[key] = value

    def commit(self) -> None:
        staged, self._staged = self._staged, {}
        if self.fail_commits:
            raise SettingsCommitError("settings commit failed")
        self._values.update(staged)


class DuckDBSettingsStore:
    """Settings persisted in a DuckDB file next to the document."""

    def __init__(self, db_path: Path, *, create_if_missing: bool = True) -> None:
        if not db_path.exists() and not create_if_missing:
            raise FileNotFoundError(f"Settings database not found: {db_path}")
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self._conn = _duckdb_mod.connect(str(db_path))
        self._staged: dict[str, Any] = {}
        self._create_schema()

    def _create_schema(self) -> None:
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS settings ("
            " key VARCHAR PRIMARY KEY,"
            " value VARCHAR,"
            " updated_at TIMESTAMP DEFAULT current_timestamp)"
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS _schema_version ("
            " table_name VARCHAR PRIMARY KEY, version VARCHAR)"
        )
        self._conn.execute(
            "INSERT OR REPLACE INTO _schema_version VALUES ('settings', ?)",
            [SCHEMA_VERSION],
        )

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> DuckDBSettingsStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def get(self, key: str) -> Any:
        if key in self._staged:
            return self._staged[key]
        row = self._conn.execute(
            "SELECT value FROM settings WHERE key = ?", [key]
        ).fetchone()
        if row is None or row[0] is None:
            return None
        return loads(row[0])

    def set(self, key: str, value: Any) -> None:
        self._staged[key] = value

    def commit(self) -> None:
        staged, self._staged = self._staged, {}
        if not staged:
            return
        try:
            self._conn.execute("BEGIN TRANSACTION")
            for key, value in staged.items():
                self._conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value, updated_at)"
                    " VALUES (?, ?, current_timestamp)",
                    [key, dumps(value)],
                )
            self._conn.execute("COMMIT")
        except _duckdb_mod.Error as exc:
            with contextlib.suppress(_duckdb_mod.Error):
                self._conn.execute("ROLLBACK")
            raise SettingsCommitError(f"Failed to save settings to {self.db_path}: {exc}") from exc


@dataclass(slots=True)
class SessionState:
    parties: list[Party] = field(default_factory=list)
    selected_party_name: str | None = None


class SessionStore:
    """Typed access to the two session-state keys of a settings store."""

    def __init__(self, store: SettingsStore) -> None:
        self.store = store

    def load(self) -> SessionState:
        raw_parties = self.store.get(STORAGE_KEY_PARTIES) or []
        parties: list[Party] = []
        for item in raw_parties:
            if isinstance(item, dict) and str(item.get("name") or "").strip():
                parties.append(Party.from_dict(item))
        selected = self.store.get(STORAGE_KEY_SELECTED)
        return SessionState(
            parties=dedupe_parties(parties),
            selected_party_name=str(selected) if selected else None,
        )

    def save_parties(self, parties: list[Party]) -> None:
        self.store.set(STORAGE_KEY_PARTIES, [p.to_dict() for p in parties])
        self.store.commit()

    def save_selected(self, name: str | None) -> None:
        self.store.set(STORAGE_KEY_SELECTED, name or None)
        self.store.commit()
