"""Tests for span resolution."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from docmask.types import Category, Detection
from docmask.resolver import DEFAULT_PRECEDENCE, precedence_table, resolve, resolve_tiered


def _d(category, start, end, confidence=0.9, source="test"):
    return Detection(category, start, end, "x" * (end - start), confidence, source)


# ── Overlaps ─────────────────────────────────────────────────────────

def test_longer_span_wins():
    phone = _d(Category.PHONE, 12, 22)
    iban = _d(Category.IBAN, 10, 34)
    assert resolve([phone, iban]) == [iban]


def test_disjoint_spans_kept_in_order():
    a = _d(Category.EMAIL, 20, 30)
    b = _d(Category.PHONE, 0, 10)
    assert resolve([a, b]) == [b, a]


def test_partial_overlap_first_start_wins():
    a = _d(Category.PERSON, 0, 10)
    b = _d(Category.ORGANIZATION, 5, 25)
    assert resolve([b, a]) == [a]


def test_output_never_overlaps():
    matches = [
        _d(Category.PHONE, 0, 12), _d(Category.CREDIT_CARD, 0, 19),
        _d(Category.DATE, 3, 8), _d(Category.EMAIL, 18, 30),
        _d(Category.URL, 25, 40), _d(Category.DOMAIN, 41, 50),
    ]
    out = resolve(matches)
    for prev, cur in zip(out, out[1:]):
        assert prev.end <= cur.start


# ── Same-span ties ───────────────────────────────────────────────────

def test_precedence_breaks_same_span():
    phone = _d(Category.PHONE, 0, 16, confidence=0.95)
    card = _d(Category.CREDIT_CARD, 0, 16, confidence=0.8)
    assert resolve([phone, card]) == [card]


def test_confidence_breaks_same_category():
    low = _d(Category.PERSON, 0, 8, confidence=0.6, source="person")
    high = _d(Category.PERSON, 0, 8, confidence=1.0, source="custom")
    assert resolve([low, high]) == [high]


def test_declaration_order_is_final_tiebreak():
    first = _d(Category.PERSON, 0, 8, source="first")
    second = _d(Category.PERSON, 0, 8, source="second")
    assert resolve([first, second])[0].source == "first"
    assert resolve([second, first])[0].source == "second"


def test_precedence_overrides():
    table = precedence_table({Category.PHONE: 200})
    assert table[Category.PHONE] == 200
    assert table[Category.IBAN] == DEFAULT_PRECEDENCE[Category.IBAN]
    phone = _d(Category.PHONE, 0, 16)
    card = _d(Category.CREDIT_CARD, 0, 16)
    assert resolve([card, phone], table) == [phone]


def test_empty_input():
    assert resolve([]) == []


# ── Confidence tiers ─────────────────────────────────────────────────

def test_weak_span_cannot_displace_strong_ones():
    weak_card = _d(Category.CREDIT_CARD, 8, 28, confidence=0.3)
    phone_a = _d(Category.PHONE, 8, 20, confidence=0.7)
    phone_b = _d(Category.PHONE, 21, 33, confidence=0.7)
    assert resolve([weak_card, phone_a, phone_b]) == [weak_card]
    assert resolve_tiered([weak_card, phone_a, phone_b], 0.5) == [phone_a, phone_b]


def test_weak_span_fills_gaps():
    strong = _d(Category.EMAIL, 0, 10, confidence=0.95)
    weak = _d(Category.CREDIT_CARD, 15, 31, confidence=0.3)
    assert resolve_tiered([weak, strong], 0.5) == [strong, weak]


def test_weak_overlapping_strong_does_not_block_other_weak():
    strong = _d(Category.PHONE, 10, 20, confidence=0.9)
    long_weak = _d(Category.CREDIT_CARD, 0, 15, confidence=0.3)
    short_weak = _d(Category.IP_ADDRESS, 0, 8, confidence=0.3)
    assert resolve_tiered([long_weak, short_weak, strong], 0.5) == [short_weak, strong]
