"""Engine configuration: defaults, JSON file overrides, environment overrides.

Precedence (lowest to highest): dataclass defaults, the JSON config file,
``PARTYMARK_*`` environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from docx.enum.text import WD_COLOR_INDEX

from partymark.host import DEFAULT_HIGHLIGHT, DEFAULT_TAG, SHORT_TERM_MAX_LEN
from partymark.io_utils import load_json
from partymark.parties import MAX_PARTIES, ORG_SCAN_LINES


ENV_PREFIX = "PARTYMARK_"

# Word highlight colour names accepted for ``highlight_color`` (case-insensitive).
HIGHLIGHT_COLORS = frozenset(
    c.name for c in WD_COLOR_INDEX if c.name not in ("INHERITED", "AUTO")
)


class ConfigError(ValueError):
    """Raised when a configuration value is missing, unknown or out of range."""


@dataclass(frozen=True, slots=True)
class EngineConfig:
    read_text_limit: int = 12000    # head text read for detection
    batch_size: int = 60            # ranges annotated per commit
    noise_cap: int = 250            # max hits for a short term before skipping
    short_term_max_len: int = SHORT_TERM_MAX_LEN
    max_parties: int = MAX_PARTIES
    org_scan_lines: int = ORG_SCAN_LINES
    tag: str = DEFAULT_TAG
    highlight_color: str = DEFAULT_HIGHLIGHT

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type in ("int", int):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"{f.name} must be an integer, got {value!r}")
                if value < 1:
                    raise ConfigError(f"{f.name} must be >= 1, got {value}")
            elif not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{f.name} must be a non-empty string, got {value!r}")
        if self.highlight_color.upper() not in HIGHLIGHT_COLORS:
            raise ConfigError(
                f"highlight_color must be one of {', '.join(sorted(HIGHLIGHT_COLORS))},"
                f" got {self.highlight_color!r}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _coerce(name: str, raw: str, current: Any) -> Any:
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigError(f"{ENV_PREFIX}{name.upper()} must be an integer") from exc
    return raw


def apply_overrides(config: EngineConfig, overrides: Mapping[str, Any]) -> EngineConfig:
    """Return *config* with *overrides* applied; unknown keys are rejected."""
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    return replace(config, **dict(overrides))


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``PARTYMARK_<FIELD>`` values from *env*."""
    defaults = EngineConfig()
    out: dict[str, Any] = {}
    for f in fields(EngineConfig):
        raw = env.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        out[f.name] = _coerce(f.name, raw, getattr(defaults, f.name))
    return out


def load_config(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Build an :class:`EngineConfig` from a JSON file and the environment."""
    config = EngineConfig()
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        payload = load_json(path)
        if not isinstance(payload, dict):
            raise ConfigError(f"Config file must hold a JSON object: {path}")
        config = apply_overrides(config, payload)
    return apply_overrides(config, env_overrides(os.environ if env is None else env))
