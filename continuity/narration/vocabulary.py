"""Production vocabulary that must never reach the image model.

The directive describes the photograph, not the set. Fixed sentence text is
written without these words; user-supplied labels (character names, prop
labels, light names, tint colors) go through ``scrub_production_terms``
before they are interpolated. Terms embedded in longer words are replaced
too, so "Ingrid" becomes "Inpattern".
"""

from __future__ import annotations

import re

# Term -> neutral replacement. Matched case-insensitively anywhere in a label.
PRODUCTION_TERM_REPLACEMENTS: dict[str, str] = {
    "camera": "viewpoint",
    "grid": "pattern",
    "axis": "line",
    "180": "one-eighty",
    "c-stand": "stand",
    "tripod": "stand",
    "crane": "lift",
    "dolly": "cart",
    "boom": "pole",
}

FORBIDDEN_TERMS: tuple[str, ...] = tuple(PRODUCTION_TERM_REPLACEMENTS)

# Longest first so "c-stand" wins over any shorter overlap.
_TERM_RE = re.compile(
    "|".join(re.escape(t) for t in sorted(FORBIDDEN_TERMS, key=len, reverse=True)),
    re.IGNORECASE,
)


def _replace(match: re.Match[str]) -> str:
    found = match.group(0)
    repl = PRODUCTION_TERM_REPLACEMENTS[found.lower()]
    if found.isupper() and len(found) > 1:
        return repl.upper()
    if found[0].isupper():
        return repl[0].upper() + repl[1:]
    return repl


def scrub_production_terms(text: str) -> str:
    """Replace production terms in a user label, keeping rough capitalisation."""
    if not text:
        return text
    return _TERM_RE.sub(_replace, text)


def find_production_terms(text: str) -> list[str]:
    """Forbidden terms present in ``text`` (lower-cased, first-seen order)."""
    seen: list[str] = []
    for m in _TERM_RE.finditer(text):
        term = m.group(0).lower()
        if term not in seen:
            seen.append(term)
    return seen
