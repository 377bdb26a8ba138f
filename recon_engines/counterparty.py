"""
recon_engines.counterparty -- Tax identifier extraction.

Responsibility:
    Locate a tax-identifier-shaped token (e.g. ``12.345.678-5``) in a free
    text bank description and return it in normalized form, and normalize
    identifiers stored on postings and obligations the same way so both
    sides compare equal.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Normalized form is digits, a dash and an uppercase check character
      (``12345678-5``, ``7654321-K``); grouping dots are stripped.
    - Never raises: absence and malformed input both yield None.
"""

from __future__ import annotations

import re

# One to three digit blocks: the first of 1-3 digits, the rest of exactly
# three digits optionally preceded by a grouping dot; then dash and check.
_TAX_ID_PATTERN = re.compile(r"\b(\d{1,3}(?:\.?\d{3}){0,2})-([0-9kK])\b")

_NORMALIZED_PATTERN = re.compile(r"^(\d{1,9})-([0-9K])$")


def extract_counterparty_id(text: str | None) -> str | None:
    """Return the first tax identifier in ``text``, normalized, or None."""
    if not isinstance(text, str) or not text:
        return None
    match = _TAX_ID_PATTERN.search(text)
    if match is None:
        return None
    digits = match.group(1).replace(".", "")
    return f"{digits}-{match.group(2).upper()}"


def normalize_counterparty_id(raw: str | None) -> str | None:
    """
    Normalize a stored identifier for comparison.

    Accepts ``12.345.678-5``, ``12345678-5`` and the dashless ``123456785``
    (last character taken as the check character).  Returns None for
    anything that does not look like a tax identifier.
    """
    if not isinstance(raw, str):
        return None
    cleaned = "".join(raw.split()).replace(".", "").upper()
    if not cleaned:
        return None
    if "-" not in cleaned and len(cleaned) >= 2:
        cleaned = f"{cleaned[:-1]}-{cleaned[-1]}"
    if _NORMALIZED_PATTERN.match(cleaned) is None:
        return None
    return cleaned
