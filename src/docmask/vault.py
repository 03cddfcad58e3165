"""PlaceholderMap: document-scoped mapping between sensitive values and tokens.

Design goals:
  - Deterministic: the same normalized value always maps to the same token
  - Numbers are never reused within a document, even for disabled values
  - Scoped: one map per document, never a process-wide counter
"""

from __future__ import annotations
import re
from collections import defaultdict
from dataclasses import replace
from typing import Iterable

from .types import AcceptedDetection, Category


# Token format: <TYPE_N>, N counts distinct values per category from 1
_TOKEN_FMT = "<{type}_{idx}>"

_DIGITS_ONLY = {Category.PHONE, Category.CREDIT_CARD, Category.SSN, Category.NATIONAL_ID}
_LOWERCASE = {Category.EMAIL, Category.DOMAIN, Category.IP_ADDRESS}
_CASEFOLD = {Category.PERSON, Category.ORGANIZATION}
_WS = re.compile(r"\s+")


def normalize(category: Category, value: str) -> str:
    """Collapse superficially different renderings of the same value."""
    if category in _DIGITS_ONLY:
        digits = "".join(c for c in value if c.isdigit())
        return digits or value.strip()
    if category is Category.IBAN:
        return "".join(value.split()).upper()
    if category in _LOWERCASE:
        return value.strip().lower()
    if category is Category.URL:
        return value.strip().lower().rstrip("/")
    if category in _CASEFOLD:
        return _WS.sub(" ", value.strip()).casefold()
    return _WS.sub(" ", value.strip())


class PlaceholderMap:
    """Bidirectional value ↔ placeholder store for one document."""

    __slots__ = ("_value_to_token", "_token_to_value", "_counters")

    def __init__(self) -> None:
        self._value_to_token: dict[tuple[Category, str], str] = {}
        self._token_to_value: dict[str, str] = {}     # first original rendering
        self._counters: dict[Category, int] = defaultdict(int)

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def get_or_create_token(self, category: Category, original: str) -> str:
        """Return the existing token for this value or allocate the next one."""
        key = (category, normalize(category, original))
        if key in self._value_to_token:
            return self._value_to_token[key]

        self._counters[category] += 1
        token = _TOKEN_FMT.format(type=category.label, idx=self._counters[category])

        self._value_to_token[key] = token
        self._token_to_value[token] = original
        return token

    def assign(self, detections: Iterable[AcceptedDetection]) -> list[AcceptedDetection]:
        """Give each detection its placeholder, in the order given."""
        return [
            replace(d, placeholder=self.get_or_create_token(d.category, d.matched_text))
            for d in detections
        ]

    def rehydrate(self, text: str) -> str:
        """Replace all tokens in text with their original values."""
        result = text
        # longest first so <EMAIL_12> is not clobbered by <EMAIL_1>
        for token in sorted(self._token_to_value, key=len, reverse=True):
            if token in result:
                result = result.replace(token, self._token_to_value[token])
        return result

    def lookup_token(self, token: str) -> str | None:
        """Look up the original value for a token."""
        return self._token_to_value.get(token)

    def lookup_value(self, category: Category, original: str) -> str | None:
        """Look up the token for a value."""
        return self._value_to_token.get((category, normalize(category, original)))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._token_to_value)

    def counter(self, category: Category) -> int:
        return self._counters.get(category, 0)

    def dump(self) -> dict[str, str]:
        """Return a copy of the token→value mapping."""
        return dict(self._token_to_value)
