"""Tests for the Redactor — detection reports, overrides and redaction."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from docmask import (
    Category, InvalidInputError, Redactor, RedactorConfig, StructureMismatchError,
    StructuredDocument, TextNode, detect, redact,
)
from docmask.patterns import Detector


SAMPLE = (
    "Dear Jane Roe,\n"
    "Your card 4532015112830366 was charged $1,250.00 on behalf of Globex Corporation.\n"
    "Questions: billing@globex.com or (555) 123-4567. Transfer to SA0380000000608010167519.\n"
    "Server 192.168.1.100, SSN 123-45-6789, contact billing@globex.com again.\n"
)


# ── Detection ────────────────────────────────────────────────────────

def test_two_emails_get_sequential_placeholders():
    text = "Contact test@example.com or bob@example.com"
    report = detect(text)
    assert [(d.category, d.matched_text, d.placeholder) for d in report.detections] == [
        (Category.EMAIL, "test@example.com", "<EMAIL_1>"),
        (Category.EMAIL, "bob@example.com", "<EMAIL_2>"),
    ]
    result = redact(StructuredDocument.from_text(text), report)
    assert result.sanitized_text == "Contact <EMAIL_1> or <EMAIL_2>"


def test_iban_wins_over_phone_and_national_id():
    report = detect("Transfer to SA0380000000608010167519 today")
    assert [(d.category, d.matched_text) for d in report.detections] == [
        (Category.IBAN, "SA0380000000608010167519"),
    ]


def test_card_confidence():
    good = detect("Card: 4532015112830366").detections
    bad = detect("Card: 4532015112830367").detections
    assert good[0].category is Category.CREDIT_CARD and good[0].confidence >= 0.9
    assert bad[0].category is Category.CREDIT_CARD and bad[0].confidence <= 0.3
    # low-confidence candidates are reported for review but not redacted by default
    assert good[0].enabled and not bad[0].enabled


def test_low_confidence_span_does_not_hide_confident_ones():
    # the two numbers together look like a card that fails Luhn
    text = "Phones: 555 123 4567 555 987 6543"
    report, result = Redactor().redact_text(text)
    assert [(d.category, d.matched_text, d.enabled) for d in report.detections] == [
        (Category.PHONE, "555 123 4567", True),
        (Category.PHONE, "555 987 6543", True),
    ]
    assert result.sanitized_text == "Phones: <PHONE_1> <PHONE_2>"


def test_sample_document():
    report = detect(SAMPLE)
    found = {(d.category, d.matched_text) for d in report.detections}
    assert (Category.PERSON, "Jane Roe") in found
    assert (Category.CREDIT_CARD, "4532015112830366") in found
    assert (Category.FINANCIAL_AMOUNT, "$1,250.00") in found
    assert (Category.ORGANIZATION, "Globex Corporation") in found
    assert (Category.PHONE, "(555) 123-4567") in found
    assert (Category.IBAN, "SA0380000000608010167519") in found
    assert (Category.IP_ADDRESS, "192.168.1.100") in found
    assert (Category.SSN, "123-45-6789") in found
    emails = [d for d in report.detections if d.category is Category.EMAIL]
    assert [d.placeholder for d in emails] == ["<EMAIL_1>", "<EMAIL_1>"]
    assert report.counts["email"] == 2


def test_no_overlaps():
    report = detect(SAMPLE)
    spans = [(d.start, d.end) for d in report.detections]
    assert spans == sorted(spans)
    for (_, end), (start, _) in zip(spans, spans[1:]):
        assert end <= start
    for d in report.detections:
        assert SAMPLE[d.start:d.end] == d.matched_text


def test_deterministic():
    a = detect(SAMPLE)
    b = detect(SAMPLE)
    assert [(d.id, d.placeholder) for d in a.detections] == [(d.id, d.placeholder) for d in b.detections]


def test_parallel_detection_matches_sequential():
    seq = detect(SAMPLE)
    par = detect(SAMPLE, RedactorConfig(max_workers=4))
    assert seq.detections == par.detections


def test_context_snippet():
    report = detect("Please write to test@example.com before Friday")
    assert "write to test@example.com before" in report.detections[0].context


def test_enabled_categories():
    config = RedactorConfig(enabled_categories={Category.PHONE})
    report = detect(SAMPLE, config)
    assert {d.category for d in report.detections} == {Category.PHONE}


def test_custom_names_always_reported():
    config = RedactorConfig(enabled_categories={Category.EMAIL}, custom_names=["Globex"])
    report = detect("Globex emailed ops@globex.com", config)
    assert [(d.category, d.matched_text, d.confidence, d.source) for d in report.detections] == [
        (Category.PERSON, "Globex", 1.0, "custom"),
        (Category.EMAIL, "ops@globex.com", 0.95, "email"),
    ]


def test_custom_organizations():
    config = RedactorConfig(custom_organizations=["initech"])
    report = detect("Sent to Initech on time", config)
    assert [(d.category, d.matched_text) for d in report.detections] == [
        (Category.ORGANIZATION, "Initech"),
    ]


def test_min_confidence_filters():
    report = detect("Card: 4532015112830367", RedactorConfig(min_confidence=0.5))
    assert report.detections == ()


def test_allow_list():
    config = RedactorConfig(allow_list={"support@example.com"})
    report = detect("Mail support@example.com or bob@example.com", config)
    assert [d.matched_text for d in report.detections] == ["bob@example.com"]


def test_confidence_buckets():
    report = detect("Card: 4532015112830367 and a@b.io and v 1.2.3.4")
    assert report.confidence_buckets == {"high": 1, "medium": 1, "low": 1}


def test_failing_detector_reported():
    redactor = Redactor()

    def boom(text):
        raise ValueError("cannot scan")

    redactor.detectors.insert(0, Detector("boom", Category.PHONE, boom))
    report = redactor.detect("Contact test@example.com")
    assert [d.matched_text for d in report.detections] == ["test@example.com"]
    assert [(f.detector, f.kind.value) for f in report.failures] == [("boom", "detector_failure")]


def test_text_too_long():
    with pytest.raises(InvalidInputError):
        detect("x" * 11, RedactorConfig(max_text_length=10))


def test_empty_text():
    report = detect("")
    assert report.detections == ()
    assert report.text_length == 0


# ── Redaction ────────────────────────────────────────────────────────

def test_override_disables_one_detection():
    text = "Contact test@example.com or bob@example.com"
    redactor = Redactor()
    report = redactor.detect(text)
    first = report.detections[0]
    assert first.id == "email:8:24"
    result = redactor.redact(StructuredDocument.from_text(text), report, {first.id: False})
    assert result.sanitized_text == "Contact test@example.com or <EMAIL_2>"


def test_override_enables_low_confidence_detection():
    text = "Card: 4532015112830367"
    redactor = Redactor()
    report = redactor.detect(text)
    card = report.detections[0]
    result = redactor.redact(StructuredDocument.from_text(text), report, {card.id: True})
    assert result.sanitized_text == "Card: <CREDIT_CARD_1>"


def test_unknown_override_rejected():
    text = "Contact test@example.com"
    report = detect(text)
    with pytest.raises(InvalidInputError):
        redact(StructuredDocument.from_text(text), report, {"email:0:3": False})


def test_redact_structured_document_round_trip():
    nodes = tuple(
        TextNode(f"p{i}", line, {"paragraph": i})
        for i, line in enumerate(SAMPLE.splitlines(keepends=True))
    )
    doc = StructuredDocument(nodes=nodes)
    report = detect(SAMPLE)
    result = redact(doc, report)
    assert result.document.flatten() == result.sanitized_text
    assert "4532015112830366" not in result.sanitized_text
    assert "billing@globex.com" not in result.sanitized_text
    assert result.sanitized_text.count("<EMAIL_1>") == 2
    assert [n.attrs for n in result.document.nodes] == [n.attrs for n in nodes]


def test_redact_wrong_document_raises():
    report = detect("Contact test@example.com")
    with pytest.raises(StructureMismatchError):
        redact(StructuredDocument.from_text("Contact test@example.co"), report)
    with pytest.raises(StructureMismatchError):
        redact(StructuredDocument.from_text("Contact best@example.com"), report)


def test_redact_text_and_mapping():
    redactor = Redactor()
    report, result = redactor.redact_text("a@b.io, A@B.io and c@d.io")
    assert result.sanitized_text == "<EMAIL_1>, <EMAIL_1> and <EMAIL_2>"
    assert report.mapping() == [
        {"placeholder": "<EMAIL_1>", "category": "email",
         "original_values": ["a@b.io", "A@B.io"], "occurrences": 2},
        {"placeholder": "<EMAIL_2>", "category": "email",
         "original_values": ["c@d.io"], "occurrences": 1},
    ]
    assert report.placeholders.rehydrate(result.sanitized_text) == "a@b.io, a@b.io and c@d.io"


def test_report_to_dict():
    report = detect("Contact test@example.com")
    data = report.to_dict()
    assert data["counts"] == {"email": 1}
    assert data["detections"][0]["placeholder"] == "<EMAIL_1>"
    assert data["failures"] == []
