"""Span resolver: turns overlapping raw matches into a clean, ordered list.

Matches are swept left to right, longest first.  On an identical span
the more specific category wins (``DEFAULT_PRECEDENCE``), then the
higher confidence, then the detector declared first.
"""

from __future__ import annotations
from bisect import bisect_right
from typing import Mapping, Sequence

from .types import Category, Detection

# Higher wins when two detections cover exactly the same span.
DEFAULT_PRECEDENCE: dict[Category, int] = {
    Category.CREDIT_CARD: 100,
    Category.IBAN: 95,
    Category.EMAIL: 90,
    Category.SSN: 85,
    Category.NATIONAL_ID: 80,
    Category.IP_ADDRESS: 75,
    Category.URL: 70,
    Category.FINANCIAL_AMOUNT: 65,
    Category.PHONE: 60,
    Category.DOMAIN: 55,
    Category.ORGANIZATION: 50,
    Category.PERSON: 45,
    Category.DATE: 40,
    Category.IMAGE_LOGO: 0,
}


def precedence_table(overrides: Mapping[Category, int] | None = None) -> dict[Category, int]:
    table = dict(DEFAULT_PRECEDENCE)
    if overrides:
        table.update(overrides)
    return table


def resolve(
    matches: Sequence[Detection],
    precedence: Mapping[Category, int] | None = None,
) -> list[Detection]:
    """Return a non-overlapping subset of *matches*, ordered by start.

    *matches* must be in detector declaration order; that order is the
    final tie-break.
    """
    table = precedence if precedence is not None else DEFAULT_PRECEDENCE
    ranked = sorted(
        enumerate(matches),
        key=lambda im: (
            im[1].start,
            -im[1].end,
            -table.get(im[1].category, 0),
            -im[1].confidence,
            im[0],
        ),
    )

    accepted: list[Detection] = []
    for _, m in ranked:
        # accepted spans are disjoint and sorted, so only the last can overlap
        if accepted and m.start < accepted[-1].end:
            continue
        accepted.append(m)
    return accepted


def _overlaps(spans: Sequence[Detection], starts: Sequence[int], m: Detection) -> bool:
    i = bisect_right(starts, m.start)
    if i > 0 and spans[i - 1].end > m.start:
        return True
    return i < len(spans) and spans[i].start < m.end


def resolve_tiered(
    matches: Sequence[Detection],
    threshold: float,
    precedence: Mapping[Category, int] | None = None,
) -> list[Detection]:
    """Resolve matches at or above *threshold* first.

    Weaker candidates only fill the gaps: one that overlaps an accepted
    strong match is dropped before the weak tier is resolved, so a
    long low-confidence span can never displace a confident one.
    """
    strong = resolve([m for m in matches if m.confidence >= threshold], precedence)
    starts = [m.start for m in strong]
    weak = resolve(
        [
            m for m in matches
            if m.confidence < threshold and not _overlaps(strong, starts, m)
        ],
        precedence,
    )
    return sorted([*strong, *weak], key=lambda m: (m.start, m.end))
