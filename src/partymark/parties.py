"""Heuristic contracting-party extractor for legal document head text.

Finds up to 5 candidate parties using 2 regex heuristics:

1. Recital pattern:     ...by and between A (the "Company") and B, ...
2. Org-suffix fallback: first lines carrying Inc/LLC/Ltd/Holdings/... names

Only runs the fallback when the recital yields fewer than 2 candidates.
Each heuristic is a pure function over normalized text so it can be
exercised without a document host.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from partymark.normalization import name_key, normalize_text, scrub_name, strip_quotes


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

DEFAULT_ROLES: tuple[str, ...] = (
    "Company",
    "Contractor",
    "Client",
    "Customer",
    "Licensor",
    "Licensee",
    "Provider",
    "Vendor",
    "Reseller",
    "Partner",
)

MAX_PARTIES = 5
ORG_SCAN_LINES = 40


@dataclass(frozen=True, slots=True)
class Party:
    """A contracting party: a trimmed, non-empty name and an optional role."""

    name: str
    role: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Party name must be a non-empty string")
        if self.name != self.name.strip():
            object.__setattr__(self, "name", self.name.strip())
        if self.role is not None and not self.role.strip():
            object.__setattr__(self, "role", None)

    @property
    def key(self) -> str:
        return name_key(self.name)

    def to_dict(self) -> dict[str, str]:
        out = {"name": self.name}
        if self.role:
            out["role"] = self.role
        return out

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Party:
        role = payload.get("role")
        return cls(name=str(payload["name"]), role=str(role) if role else None)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_ROLE_ALTERNATION = "|".join(DEFAULT_ROLES)

RECITAL_RE = re.compile(
    r"\b(?:by and )?between\s+(.{2,140}?)\s+and\s+(.{2,140}?)[.;,\n]",
    re.IGNORECASE,
)

ROLE_PAREN_RE = re.compile(
    r"\(\s*(?:the\s+)?[\"“](" + _ROLE_ALTERNATION + r")[\"”]\s*\)",
    re.IGNORECASE,
)

_ORG_SUFFIX = (
    r"(?:Inc\.?|Incorporated|Corp\.?|Corporation|LLC|L\.?L\.?C\.?"
    r"|Ltd\.?|Limited|Holdings|Group|Partners|Company)"
)

ORG_TOKEN_RE = re.compile(_ORG_SUFFIX, re.IGNORECASE)

# Longest run from an uppercase letter up to a suffix token (greedy body).
ORG_NAME_RE = re.compile(
    r"([A-Z][A-Za-z0-9&.,'’\- ]{2,80}" + _ORG_SUFFIX + r")(?![A-Za-z])"
)

STOPWORD_RE = re.compile(
    r"^(?:services?|deliverables?|agreement|parties?)$",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------

def extract_role(fragment: str) -> Party | None:
    """Split a scrubbed fragment into name and parenthetical role.

    ``Acme Inc. (the "Company")`` -> ``Party("Acme Inc.", "Company")``.
    Returns None when nothing is left of the name.
    """
    m = ROLE_PAREN_RE.search(fragment)
    role = m.group(1).capitalize() if m else None
    name = strip_quotes(ROLE_PAREN_RE.sub("", fragment).strip())
    if not name:
        return None
    return Party(name=name, role=role)


def find_recital_parties(text: str) -> list[Party]:
    """Apply the "between A and B" recital pattern to normalized text."""
    m = RECITAL_RE.search(text)
    if not m:
        return []
    out: list[Party] = []
    for fragment in (m.group(1), m.group(2)):
        scrubbed = scrub_name(fragment)
        if not scrubbed:
            continue
        party = extract_role(scrubbed)
        if party is not None:
            out.append(party)
    return out


def find_org_names(text: str, *, max_lines: int = ORG_SCAN_LINES) -> list[str]:
    """Scan the first *max_lines* lines for organization-like names."""
    out: list[str] = []
    seen: set[str] = set()
    for line in re.split(r"\n+", text)[:max_lines]:
        if not ORG_TOKEN_RE.search(line):
            continue
        m = ORG_NAME_RE.search(line)
        if not m:
            continue
        name = scrub_name(m.group(1))
        if name and name not in seen:
            seen.add(name)
            out.append(name)
    return out


def is_stopword_name(name: str) -> bool:
    return bool(STOPWORD_RE.match(name.strip()))


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def filter_stopwords(parties: list[Party]) -> list[Party]:
    """Drop generic nouns ("Services", "Agreement", ...) detected as names."""
    return [p for p in parties if not is_stopword_name(p.name)]


def dedupe_parties(parties: list[Party]) -> list[Party]:
    """Deduplicate by case-insensitive name; first occurrence (and role) wins."""
    seen: set[str] = set()
    out: list[Party] = []
    for p in parties:
        if p.key in seen:
            continue
        seen.add(p.key)
        out.append(p)
    return out


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_parties(
    text: str,
    *,
    max_parties: int = MAX_PARTIES,
    max_lines: int = ORG_SCAN_LINES,
) -> list[Party]:
    """Extract raw candidate parties from document head text.

    Args:
        text: Raw head text; normalized here.
        max_parties: Cap on returned candidates (discovery order).
        max_lines: Lines scanned by the org-suffix fallback.

    Returns:
        Candidates in discovery order. Empty names never appear.
    """
    t = normalize_text(text)
    candidates = find_recital_parties(t)

    if len(candidates) < 2:
        for org in find_org_names(t, max_lines=max_lines):
            if any(name_key(c.name) == name_key(org) for c in candidates):
                continue
            party = extract_role(org)
            if party is not None:
                candidates.append(party)
            if len(candidates) >= 2:
                break

    return candidates[:max_parties]


def detect_parties(
    head_text: str,
    *,
    max_parties: int = MAX_PARTIES,
    max_lines: int = ORG_SCAN_LINES,
) -> list[Party]:
    """Full detection contract: extract, drop stopwords, dedupe."""
    parties = extract_parties(head_text, max_parties=max_parties, max_lines=max_lines)
    return dedupe_parties(filter_stopwords(parties))


def find_party(parties: list[Party], name: str) -> Party | None:
    """Look up a party by case-insensitive identity."""
    key = name_key(name)
    for p in parties:
        if p.key == key:
            return p
    return None
