"""Zone catalog lookups: name normalization, fuzzy matching and default colors."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

from ...config import DEFAULT_ZONE_COLORS, FALLBACK_ZONE_COLOR, ZONE_CATALOG
from ...models.domain import ZoneCategory

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize_zone_name(name: str) -> str:
    """Lowercase, strip diacritics, drop punctuation and collapse whitespace."""

    decomposed = unicodedata.normalize("NFKD", name.lower())
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(_NON_ALNUM.sub("", ascii_only).split())


_NORMALIZED_CATALOG = tuple((normalize_zone_name(entry), entry) for entry in ZONE_CATALOG)


def match_catalog_name(name: str) -> Optional[str]:
    """Return the first catalog entry whose normalized form contains, or is contained in, ``name``."""

    normalized = normalize_zone_name(name)
    if not normalized:
        return None
    for candidate, entry in _NORMALIZED_CATALOG:
        if candidate in normalized or normalized in candidate:
            return entry
    return None


def category_for(catalog_name: str) -> ZoneCategory:
    return "metropolitan" if "metropolitana" in catalog_name.lower() else "rural"


def default_zone_color(name: str) -> str:
    """Palette color for a zone name, matched on its roman-numeral prefix."""

    normalized = normalize_zone_name(name)
    tokens = normalized.split()
    # "zona x" is a prefix of "zona xi", so compare on whole tokens
    prefix = " ".join(tokens[:2])
    return DEFAULT_ZONE_COLORS.get(prefix, FALLBACK_ZONE_COLOR)
