"""Detector Set, structured layer: regex patterns for structured PII.

Each detector is a pure ``text -> list[Detection]`` function.  They share
no state, so ``run_detectors`` may evaluate them on a thread pool; the
output is concatenated in declaration order either way.  Overlaps are
left in place on purpose: the resolver arbitrates them.
"""

from __future__ import annotations
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable

from .types import Category, Detection, DetectorFailure
from . import validators as v

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Detector:
    """A named scanner for one category."""
    name: str
    category: Category
    scan: Callable[[str], list[Detection]]

    def __call__(self, text: str) -> list[Detection]:
        return self.scan(text)


def emit(
    out: list[Detection],
    text: str,
    category: Category,
    start: int,
    end: int,
    confidence: float,
    source: str,
) -> None:
    """Append a detection if its span is well formed."""
    if not (0 <= start < end <= len(text)):
        return
    value = text[start:end]
    if not value.strip():
        return
    out.append(Detection(category, start, end, value, round(confidence, 4), source))


def _scan_table(
    text: str,
    category: Category,
    source: str,
    table: Iterable[tuple[re.Pattern, float]],
) -> list[Detection]:
    """Run ``(pattern, score)`` pairs, keeping the first score per span."""
    out: list[Detection] = []
    seen: set[tuple[int, int]] = set()
    for pattern, score in table:
        for m in pattern.finditer(text):
            if (m.start(), m.end()) in seen:
                continue
            seen.add((m.start(), m.end()))
            emit(out, text, category, m.start(), m.end(), score, source)
    return out


# ── Email ────────────────────────────────────────────────────────────

_EMAIL = re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")


def detect_email(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _EMAIL.finditer(text):
        local, _, domain = m.group().partition("@")
        if len(local) > 64 or local.startswith(".") or local.endswith("."):
            continue
        if domain.startswith((".", "-")) or len(domain) > 253:
            continue
        emit(out, text, Category.EMAIL, m.start(), m.end(), 0.95, "email")
    return out


# ── URL ──────────────────────────────────────────────────────────────

_URL = re.compile(r"\b(?:https?|ftp)://[^\s<>\[\]\"'`,;)]+", re.IGNORECASE)
_URL_TRAILING = ".,;:!?)"


def detect_url(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _URL.finditer(text):
        end = m.end()
        while end > m.start() and text[end - 1] in _URL_TRAILING:
            end -= 1
        if text[m.start():end].endswith("://"):
            continue
        emit(out, text, Category.URL, m.start(), end, 0.95, "url")
    return out


# ── Domain ───────────────────────────────────────────────────────────

_TLDS = (
    "com|org|net|io|tech|dev|app|ai|cloud|edu|gov|mil|info|biz|tv|xyz|online|"
    "site|store|shop|blog|email|pro|asia|eu|uk|de|fr|es|nl|ch|au|nz|ca|jp|cn|kr|"
    "ru|br|mx|za|ae|sa|eg|ng|ke|il|tr|pl|cz|se|dk|pt|gr|ie|hu|ro|ua|pk|sg|hk"
)
_DOMAIN = re.compile(
    r"(?<![@\w.\-])(?<!://)"
    r"(?:[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?\.)+"
    rf"(?:{_TLDS})(?:\.[a-z]{{2}})?\b"
    r"(?![@\-]|\.\w)",
    re.IGNORECASE,
)


def detect_domain(text: str) -> list[Detection]:
    return _scan_table(text, Category.DOMAIN, "domain", [(_DOMAIN, 0.9)])


# ── IBAN ─────────────────────────────────────────────────────────────

_IBAN = re.compile(r"\b[A-Z]{2}\d{2}(?: ?[A-Z0-9]{4}){2,7}(?: ?[A-Z0-9]{1,4})?\b")


def _trim_to_length(text: str, start: int, end: int, length: int) -> int:
    """Return the offset after the *length*-th alphanumeric character."""
    seen = 0
    for i in range(start, end):
        if text[i].isalnum():
            seen += 1
            if seen == length:
                return i + 1
    return end


def detect_iban(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _IBAN.finditer(text):
        start, end = m.start(), m.end()
        compact = v.iban_compact(m.group())
        expected = v.iban_expected_length(compact[:2])
        if expected is not None:
            if len(compact) < expected:
                continue
            if len(compact) > expected:
                end = _trim_to_length(text, start, end, expected)
                compact = compact[:expected]
        elif not 15 <= len(compact) <= 34:
            continue
        score = 0.95 if v.iban_mod97(compact) else 0.5
        emit(out, text, Category.IBAN, start, end, score, "iban")
    return out


# ── Credit card ──────────────────────────────────────────────────────

_CARD = re.compile(r"(?<![\d\-])\d(?:[ \-]?\d){12,18}(?!-?\d)")


def detect_credit_card(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _CARD.finditer(text):
        digits = v.digits_of(m.group())
        if v.luhn_check(digits):
            score = 0.95 if v.has_card_prefix(digits) else 0.8
        else:
            score = 0.3
        emit(out, text, Category.CREDIT_CARD, m.start(), m.end(), score, "credit_card")
    return out


# ── SSN / national ID ────────────────────────────────────────────────

_SSN = re.compile(r"\b\d{3}([\- ])\d{2}\1\d{4}\b")
_SAUDI_ID = re.compile(r"\b[12]\d{9}\b")


def detect_ssn(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _SSN.finditer(text):
        score = 0.9 if v.ssn_is_plausible(m.group()) else 0.5
        emit(out, text, Category.SSN, m.start(), m.end(), score, "ssn")
    return out


def detect_national_id(text: str) -> list[Detection]:
    # A bare 10-digit run is ambiguous with phones and account numbers,
    # so only checksum-valid IDs are reported.
    out: list[Detection] = []
    for m in _SAUDI_ID.finditer(text):
        if v.saudi_id_check(m.group()):
            emit(out, text, Category.NATIONAL_ID, m.start(), m.end(), 0.9, "national_id")
    return out


# ── IP address ───────────────────────────────────────────────────────

_IPV4 = re.compile(r"(?<![\d.])(?:\d{1,3}\.){3}\d{1,3}(?!\.?\d)")
_IPV6 = re.compile(r"(?<![\w:])(?:[0-9A-Fa-f]{0,4}:){2,7}[0-9A-Fa-f]{0,4}(?![\w:])")


def detect_ip_address(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _IPV4.finditer(text):
        octets = v.ipv4_octets(m.group())
        if octets is None:
            continue
        if any(o > 255 for o in octets):
            score = 0.3
        elif all(o < 10 for o in octets):
            score = 0.5     # looks like a version number
        else:
            score = 0.95
        emit(out, text, Category.IP_ADDRESS, m.start(), m.end(), score, "ip_address")
    for m in _IPV6.finditer(text):
        value = m.group()
        if not any(c not in ":" for c in value) or not v.is_ipv6(value):
            continue
        emit(out, text, Category.IP_ADDRESS, m.start(), m.end(), 0.9, "ip_address")
    return out


# ── Phone ────────────────────────────────────────────────────────────

# Most specific first; a span keeps the score of the first pattern that found it.
_PHONE_PATTERNS: list[tuple[re.Pattern, float]] = [
    # (123) 456-7890, +1 (123) 456-7890
    (re.compile(r"(?<![\w+])(?:\+?1[\s.\-]?)?\(\d{3}\)[\s.\-]?\d{3}[\s.\-]?\d{4}\b"), 0.95),
    # +966 50 123 4567, 0044 20 7946 0958, +1 234-567-8910
    (re.compile(
        r"(?<![\w+])(?:\+|00)\d{1,3}[\s.\-]?\(?\d{1,4}\)?(?:[\s.\-]?\d{2,4}){1,4}\b"
    ), 0.9),
    # 1-800-555-1234
    (re.compile(r"\b1[\s.\-]?8(?:00|33|44|55|66|77|88)[\s.\-]?\d{3}[\s.\-]?\d{4}\b"), 0.9),
    # 123-456-7890, 123.456.7890
    (re.compile(r"\b\d{3}[.\-]\d{3}[.\-]\d{4}\b"), 0.85),
    # Saudi mobile: 0501234567, 050 123 4567
    (re.compile(r"\b05\d[\s\-]?\d{3}[\s\-]?\d{4}\b"), 0.85),
    # loose grouped digits
    (re.compile(r"\b\d{3,4}[\s.\-]\d{3,4}[\s.\-]\d{3,4}\b"), 0.7),
]


def detect_phone(text: str) -> list[Detection]:
    out: list[Detection] = []
    seen: set[tuple[int, int]] = set()
    for pattern, score in _PHONE_PATTERNS:
        for m in pattern.finditer(text):
            span = (m.start(), m.end())
            if span in seen:
                continue
            if not 7 <= len(v.digits_of(m.group())) <= 15:
                continue
            seen.add(span)
            emit(out, text, Category.PHONE, m.start(), m.end(), score, "phone")
    return out


# ── Financial amounts ────────────────────────────────────────────────

_AMOUNT = r"(?:\d{1,3}(?:[,']\d{3})+|\d+)(?:\.\d{1,2})?"
_MAGNITUDE = r"(?:\s?(?:K|M|B|(?i:thousand|million|billion))\b)?"
_CODES = r"USD|EUR|GBP|SAR|SR|AED|JPY|INR|CHF"
_WORDS = r"(?i:dollars?|euros?|pounds?|riyals?|dirhams?|yen|rupees?)"

_MONEY_PATTERNS: list[tuple[re.Pattern, float]] = [
    # $1,000.00  €5M  SAR 2,500  CHF 1'000
    (re.compile(rf"(?:[$€£¥₹]|\b(?:{_CODES})\b)\s?{_AMOUNT}{_MAGNITUDE}(?![\d,])"), 0.95),
    # 100€  2,500 SAR  50 euros
    (re.compile(rf"\b{_AMOUNT}{_MAGNITUDE}\s?(?:[€¥]|(?:{_CODES})\b|{_WORDS}\b)"), 0.85),
]


def detect_financial_amount(text: str) -> list[Detection]:
    return _scan_table(text, Category.FINANCIAL_AMOUNT, "financial_amount", _MONEY_PATTERNS)


# ── Dates ────────────────────────────────────────────────────────────

_MONTHS = (
    r"(?:January|February|March|April|May|June|July|August|September|October|"
    r"November|December|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)"
)
_DATE_PATTERNS: list[tuple[re.Pattern, float]] = [
    (re.compile(r"\b\d{4}-\d{2}-\d{2}\b"), 0.6),
    (re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"), 0.6),
    (re.compile(r"\b\d{1,2}\.\d{1,2}\.\d{2,4}\b"), 0.6),
    (re.compile(rf"\b{_MONTHS}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s*\d{{4}}\b", re.IGNORECASE), 0.6),
    (re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTHS}\.?,?\s*\d{{4}}\b", re.IGNORECASE), 0.6),
]


def detect_date(text: str) -> list[Detection]:
    return _scan_table(text, Category.DATE, "date", _DATE_PATTERNS)


# ── Registry ─────────────────────────────────────────────────────────

STRUCTURED_DETECTORS: tuple[Detector, ...] = (
    Detector("email", Category.EMAIL, detect_email),
    Detector("url", Category.URL, detect_url),
    Detector("iban", Category.IBAN, detect_iban),
    Detector("credit_card", Category.CREDIT_CARD, detect_credit_card),
    Detector("ssn", Category.SSN, detect_ssn),
    Detector("national_id", Category.NATIONAL_ID, detect_national_id),
    Detector("ip_address", Category.IP_ADDRESS, detect_ip_address),
    Detector("phone", Category.PHONE, detect_phone),
    Detector("financial_amount", Category.FINANCIAL_AMOUNT, detect_financial_amount),
    Detector("date", Category.DATE, detect_date),
    Detector("domain", Category.DOMAIN, detect_domain),
)


def _safe_scan(detector: Detector, text: str) -> tuple[list[Detection], DetectorFailure | None]:
    try:
        return list(detector(text)), None
    except Exception as e:
        logger.error(f"Detector {detector.name} failed: {e}")
        return [], DetectorFailure(detector=detector.name, message=str(e))


def run_detectors(
    text: str,
    detectors: Iterable[Detector],
    *,
    max_workers: int = 0,
) -> tuple[list[Detection], list[DetectorFailure]]:
    """Run detectors over *text*, isolating failures.

    Returns the concatenated raw matches (declaration order) and one
    DetectorFailure per detector that raised.
    """
    detectors = list(detectors)
    if max_workers > 0 and len(detectors) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda d: _safe_scan(d, text), detectors))
    else:
        results = [_safe_scan(d, text) for d in detectors]

    matches: list[Detection] = []
    failures: list[DetectorFailure] = []
    for found, failure in results:
        matches.extend(found)
        if failure is not None:
            failures.append(failure)
    return matches, failures
