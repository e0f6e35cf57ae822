"""
Text normalization helpers shared by payload decoding and event matching.
"""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")
_WORD = re.compile(r"[A-Z0-9]+")


def strip_accents(value: str) -> str:
    """Remove combining marks, so "País" becomes "Pais"."""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_label(value: str | None) -> str:
    """Upper-case, accent-free, single-spaced version of a label."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", strip_accents(value)).strip().upper()


def label_words(value: str | None) -> set[str]:
    """Alphanumeric words of a normalized label."""
    return set(_WORD.findall(normalize_label(value)))


def split_event_labels(value: str | None) -> list[str]:
    """Split a "CUMBRE, DIGI AMERICAS (DESAYUNO)" style list into labels."""
    if not value:
        return []
    return [part.strip() for part in re.split(r"[,;\n]", value) if part.strip()]


def resolve_alias(label: str, aliases: dict | None) -> str:
    """Map a normalized label through the configured alias table."""
    normalized = normalize_label(label)
    if not aliases:
        return normalized
    table = {normalize_label(k): normalize_label(v) for k, v in aliases.items()}
    return table.get(normalized, normalized)
