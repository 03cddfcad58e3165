"""Detector Set, names layer: people and organisations.

There is no statistical model here.  Person names are runs of
capitalised words, organisations are capitalised runs ending in a
corporate suffix, and user-supplied lists are matched verbatim
(case-insensitive) at full confidence.
"""

from __future__ import annotations
import re
from typing import Iterable

from .types import Category, Detection
from .patterns import Detector, emit

_TOKEN = r"[A-Z](?:[a-z]+(?:['\-]?[A-Z][a-z]+)*|'[A-Z][a-z]+)"
_RUN = re.compile(rf"\b{_TOKEN}(?:[ \t]+{_TOKEN})+\b")
_TOKEN_RE = re.compile(_TOKEN)

_HONORIFICS = frozenset({"Mr", "Mrs", "Ms", "Miss", "Dr", "Prof", "Sir", "Madam"})
_HONORIFIC_BEFORE = re.compile(r"\b(?:Mr|Mrs|Ms|Miss|Dr|Prof)\.?[ \t]+$")

# Words that start sentences or greetings; dropped from the front of a run.
LEADING_STOPWORDS = frozenset({
    "A", "An", "The", "This", "That", "These", "Those", "There", "Here",
    "Dear", "Hello", "Hi", "Hey", "Thanks", "Thank", "Regards", "Sincerely",
    "Contact", "Please", "Call", "Email", "Send", "Ask", "Tell", "Meet",
    "Visit", "See",
    "From", "To", "For", "With", "By", "And", "Or", "But", "If", "When",
    "Our", "Your", "My", "His", "Her", "Their", "We", "You", "They", "He",
    "She", "It", "In", "On", "At", "As", "Of", "Attn", "Signed", "Approved",
    "Name", "Client", "Customer", "Patient", "Employee", "Manager", "Director",
})

# Capitalised words that never belong to a person's name; a run containing one is rejected.
NON_NAME_WORDS = frozenset({
    "January", "February", "March", "April", "May", "June", "July", "August",
    "September", "October", "November", "December",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "Street", "Road", "Avenue", "Lane", "Drive", "Boulevard", "Square",
    "City", "County", "State", "Republic", "Kingdom", "United", "North", "South",
    "East", "West", "Bank", "Company", "Corporation", "Group", "Limited",
    "Holdings", "University", "College", "School", "Hospital", "Department",
    "Ministry", "Agreement", "Contract", "Invoice", "Report", "Section",
    "Article", "Table", "Page", "Figure", "Total", "Amount", "Date", "Phone",
    "Address", "Account", "Number", "Project", "Team", "Office", "Board",
    "Meeting", "Annual", "General", "Policy", "Terms", "Conditions", "Inc",
    "Corp", "Ltd", "Co", "Mr", "Mrs", "Ms", "Dr", "Prof",
}) | LEADING_STOPWORDS

_ORG_TOKEN = r"[A-Z][A-Za-z0-9&'\-]*"
_ORG_SUFFIX = (
    r"(?:(?:Inc|Corp|Ltd|Co|L\.L\.C|S\.A)\.|"
    r"(?:Inc|Corp|Ltd|LLC|GmbH|PLC|AG|Company|Corporation|Limited|Group|Holdings)\b)"
)
_ORG = re.compile(
    rf"\b{_ORG_TOKEN}(?:[ \t]+(?:&[ \t]+)?{_ORG_TOKEN}){{0,4}}?,?[ \t]+{_ORG_SUFFIX}"
)


def _tokens(text: str, start: int, end: int) -> list[tuple[str, int, int]]:
    return [(m.group(), m.start(), m.end()) for m in _TOKEN_RE.finditer(text, start, end)]


def detect_person(text: str) -> list[Detection]:
    out: list[Detection] = []
    for run in _RUN.finditer(text):
        tokens = _tokens(text, run.start(), run.end())
        honorific = bool(_HONORIFIC_BEFORE.search(text, max(0, run.start() - 8), run.start()))
        while tokens and (tokens[0][0] in LEADING_STOPWORDS or tokens[0][0] in _HONORIFICS):
            honorific = honorific or tokens[0][0] in _HONORIFICS
            tokens.pop(0)

        if not 2 <= len(tokens) <= 4:
            continue
        # "Jane Roe Street" is a place, not a person
        if any(tok[0] in NON_NAME_WORDS for tok in tokens):
            continue
        score = 0.6 if len(tokens) == 2 else 0.7
        if honorific:
            score = min(score + 0.2, 0.9)
        emit(out, text, Category.PERSON, tokens[0][1], tokens[-1][2], score, "person")
    return out


def detect_organization(text: str) -> list[Detection]:
    out: list[Detection] = []
    for m in _ORG.finditer(text):
        start = m.start()
        # drop sentence-initial words ("Contact Acme Corp." → "Acme Corp.")
        for tok in re.finditer(_ORG_TOKEN, m.group()):
            if tok.group() not in LEADING_STOPWORDS:
                break
            start = m.start() + tok.end()
            while start < m.end() and text[start] in " \t":
                start += 1
        if re.match(_ORG_SUFFIX, text[start:m.end()]):
            continue    # nothing but the suffix left
        emit(out, text, Category.ORGANIZATION, start, m.end(), 0.85, "organization")
    return out


def _compile_names(names: Iterable[str]) -> list[re.Pattern]:
    patterns: list[re.Pattern] = []
    seen: set[str] = set()
    for name in names:
        words = name.split()
        key = " ".join(words).casefold()
        if not words or key in seen:
            continue
        seen.add(key)
        body = r"\s+".join(re.escape(w) for w in words)
        patterns.append(re.compile(rf"(?<!\w){body}(?!\w)", re.IGNORECASE))
    return patterns


def custom_detector(names: Iterable[str], category: Category) -> Detector:
    """Detector for an explicit user list.  Matches always score 1.0."""
    patterns = _compile_names(names)

    def scan(text: str) -> list[Detection]:
        out: list[Detection] = []
        seen: set[tuple[int, int]] = set()
        for pattern in patterns:
            for m in pattern.finditer(text):
                if (m.start(), m.end()) in seen:
                    continue
                seen.add((m.start(), m.end()))
                emit(out, text, category, m.start(), m.end(), 1.0, "custom")
        return out

    return Detector(f"custom_{category.value}", category, scan)


HEURISTIC_DETECTORS: tuple[Detector, ...] = (
    Detector("organization", Category.ORGANIZATION, detect_organization),
    Detector("person", Category.PERSON, detect_person),
)
