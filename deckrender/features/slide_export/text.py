"""Normalisation of the per-slide text overlay configuration.

Clients send the overlay either as a bare string or as a mapping that carries
the text under one of several aliased keys next to free-form display options::

    "Quarterly results"
    {"content": "Quarterly results", "fontSize": 24, "options": {"color": "FFFFFF"}}

Both shapes collapse into a single :class:`NormalizedText`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

PRIMARY_VALUE_KEYS = ("value", "content", "text")
OPTIONS_KEY = "options"
RESERVED_KEYS = frozenset(PRIMARY_VALUE_KEYS + (OPTIONS_KEY,))


@dataclass(frozen=True)
class NormalizedText:
    """Canonical overlay text plus the display options that style it."""

    value: str
    options: Dict[str, Any] = field(default_factory=dict)


def _resolve_primary_value(raw: Dict[str, Any]) -> Optional[str]:
    # Empty strings count as absent so a later alias can still win.
    for key in PRIMARY_VALUE_KEYS:
        candidate = raw.get(key)
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def normalize_text(raw: Any) -> Optional[NormalizedText]:
    """Map a slide's ``text`` field onto :class:`NormalizedText`.

    Returns ``None`` when the input is falsy, of an unsupported type, or when
    none of the ``value``/``content``/``text`` aliases carries a non-empty
    string.
    """

    if not raw:
        return None

    if isinstance(raw, str):
        return NormalizedText(value=raw, options={})

    if not isinstance(raw, dict):
        return None

    value = _resolve_primary_value(raw)
    if value is None:
        return None

    options = {key: item for key, item in raw.items() if key not in RESERVED_KEYS}
    explicit = raw.get(OPTIONS_KEY)
    if isinstance(explicit, dict):
        options.update(explicit)

    return NormalizedText(value=value, options=options)


__all__ = ["NormalizedText", "normalize_text"]
