"""Pure athlete-name normalization.

Result sheets mix two conventions: ``"Given Family"`` and the international
``"FAMILY Given"`` form where the family name is written in capitals. Names are
brought to ``"Given Family[ Suffix]"`` before any lookup so that both spellings of
one athlete meet on the same key.
"""

from __future__ import annotations

import re

_SUFFIX_RE = re.compile(
    r"\s+(Jr\.?|Sr\.?|II|III|IV|V|VI|VII|VIII|IX|X|XI|XII)(?=\s|$)",
    re.IGNORECASE,
)
# Country codes leaked from scraped cells, e.g. "WANG Hao CHN" or "WANG Hao CHN (CHN)".
_TRAILING_CODE_RE = re.compile(r"\s+[A-Z]{3}(?:\s*\([A-Z]{3}\))?\s*$")
_CAPS_RUN_RE = re.compile(r"[A-Z]{3,}")
_WHITESPACE_RE = re.compile(r"\s+")


def _is_caps_word(word: str) -> bool:
    return len(word) > 1 and word.upper() == word and any(ch.isalpha() for ch in word)


def _is_family_lead(word: str) -> bool:
    # "AlQAHTANI", "McDONALD": capitalised family names with a lowercase prefix.
    if _is_caps_word(word):
        return True
    return any(ch.islower() for ch in word) and _CAPS_RUN_RE.search(word) is not None


def _split_suffix(name: str) -> tuple[str, str | None]:
    match = _SUFFIX_RE.search(name)
    if match is None:
        return name, None
    suffix = match.group(1).rstrip(".")
    suffix = suffix.capitalize() if suffix.lower() in {"jr", "sr"} else suffix.upper()
    remainder = (name[: match.start()] + " " + name[match.end() :]).strip()
    return remainder, suffix


def _strip_leaked_code(name: str) -> str:
    # Codes only leak into "FAMILY Given" cells; "Mary Jane LEE" keeps its family name.
    stripped = _TRAILING_CODE_RE.sub("", name).strip()
    words = stripped.split()
    if len(words) >= 2 and _is_family_lead(words[0]):
        return stripped
    return name


def normalize_name(raw: str | None) -> str:
    """Return ``raw`` in canonical ``"Given Family[ Suffix]"`` order.

    >>> normalize_name("WANG Hao")
    'Hao WANG'
    >>> normalize_name("FELIX DA SILVA Thiago")
    'Thiago FELIX DA SILVA'
    >>> normalize_name("AGAD Fernando Jr.")
    'Fernando AGAD Jr'
    >>> normalize_name("  Jane   Smith ")
    'Jane Smith'
    """

    if not raw:
        return ""
    name = _WHITESPACE_RE.sub(" ", raw).strip()
    if not name:
        return ""

    name, suffix = _split_suffix(name)
    name = _strip_leaked_code(name)
    parts = name.split(" ")

    if len(parts) > 1 and _is_family_lead(parts[0]):
        family_end = 1
        if _is_caps_word(parts[0]):
            while family_end < len(parts) and _is_caps_word(parts[family_end]):
                family_end += 1
        # All-caps throughout ("JANE SMITH") carries no ordering signal.
        if family_end < len(parts):
            parts = parts[family_end:] + parts[:family_end]

    canonical = " ".join(parts)
    return f"{canonical} {suffix}" if suffix else canonical


def name_key(name: str) -> str:
    """Case-insensitive match key for an already normalized name."""
    return _WHITESPACE_RE.sub(" ", name).strip().casefold()
