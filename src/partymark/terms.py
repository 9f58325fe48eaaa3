"""Surface forms ("terms") that refer to a selected party.

A party is referenced by its name, its possessive, role aliases ("the
Company", "COMPANY", ...) with their possessives, and one pronoun set
chosen by a plurality heuristic.
"""

from __future__ import annotations

import re

from partymark.parties import DEFAULT_ROLES, Party


SINGULAR_PRONOUNS: tuple[str, ...] = ("it", "its", "itself")
PLURAL_PRONOUNS: tuple[str, ...] = ("they", "their", "themselves")

_PLURAL_NAME_RE = re.compile(r"(holdings|group|partners)\b", re.IGNORECASE)
_TRAILING_S_RE = re.compile(r"[^']s\b", re.IGNORECASE)
_POSSESSIVE_RE = re.compile(r"'\s*s?$")


def make_possessive(s: str) -> str:
    """``Acme`` -> ``Acme's``; ``Holdings`` -> ``Holdings'``."""
    if not s:
        return s
    if s.endswith(("s", "S")):
        return f"{s}'"
    return f"{s}'s"


def is_possessive(term: str) -> bool:
    return bool(_POSSESSIVE_RE.search(term))


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def build_aliases(party: Party) -> list[str]:
    """Role aliases: the party's own role, or every default role if unset."""
    out: list[str] = []
    roles = (party.role,) if party.role else DEFAULT_ROLES
    for role in roles:
        upper = role.upper()
        out.extend((role, f"the {role}", upper, f"the {upper}"))
    return _dedupe(out)


def pronouns_for(name: str) -> list[str]:
    """Plural pronouns for group-like or s-final names, singular otherwise."""
    if _PLURAL_NAME_RE.search(name) or _TRAILING_S_RE.search(name):
        return list(PLURAL_PRONOUNS)
    return list(SINGULAR_PRONOUNS)


def build_terms(name: str, aliases: list[str], pronouns: list[str]) -> list[str]:
    """Combine name, aliases and pronouns into a deduplicated term list.

    Possessives are added for the name and every alias, never for pronouns.
    Deduplication is case-sensitive on the trimmed string, so "CLIENT" and
    "Client" both survive.
    """
    unique: dict[str, None] = {}

    def _add(s: str) -> None:
        s = s.strip()
        if s:
            unique.setdefault(s)

    _add(name)
    _add(make_possessive(name))
    for alias in aliases:
        _add(alias)
        _add(make_possessive(alias))
    for pronoun in pronouns:
        _add(pronoun)
    return list(unique)


def order_terms(terms: list[str]) -> list[str]:
    """Longest first; ties keep their original order."""
    return sorted(terms, key=len, reverse=True)


def terms_for_party(party: Party) -> list[str]:
    """All terms for *party*, in matching order."""
    return order_terms(
        build_terms(party.name, build_aliases(party), pronouns_for(party.name))
    )
