"""Core types."""

from __future__ import annotations
import enum
from dataclasses import dataclass, field, replace
from typing import Any, Iterator, TYPE_CHECKING

if TYPE_CHECKING:
    from .vault import PlaceholderMap


class Category(str, enum.Enum):
    """Kinds of sensitive value the engine knows how to find."""

    EMAIL = "email"
    PHONE = "phone"
    SSN = "ssn"
    NATIONAL_ID = "national_id"
    CREDIT_CARD = "credit_card"
    IBAN = "iban"
    IP_ADDRESS = "ip_address"
    URL = "url"
    DOMAIN = "domain"
    FINANCIAL_AMOUNT = "financial_amount"
    DATE = "date"
    PERSON = "person"
    ORGANIZATION = "organization"
    IMAGE_LOGO = "image_logo"

    @property
    def label(self) -> str:
        """Uppercase name used inside placeholders."""
        return self.value.upper()

    @classmethod
    def parse(cls, name: str) -> "Category":
        """Accept ``"credit_card"``, ``"CREDIT_CARD"`` or ``"credit-card"``."""
        return cls(name.strip().lower().replace("-", "_"))


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds a caller can branch on."""

    DETECTOR_FAILURE = "detector_failure"
    DECODE_FAILURE = "decode_failure"
    FINGERPRINT_UNAVAILABLE = "fingerprint_unavailable"
    STRUCTURE_MISMATCH = "structure_mismatch"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True, slots=True)
class Detection:
    """A single raw match produced by one detector."""
    category: Category
    start: int
    end: int               # exclusive
    matched_text: str
    confidence: float      # 0.0–1.0
    source: str            # detector name, or "custom" for user lists


@dataclass(frozen=True, slots=True)
class AcceptedDetection:
    """A detection that survived span resolution."""
    id: str
    category: Category
    start: int
    end: int
    matched_text: str
    confidence: float
    source: str
    placeholder: str = ""
    enabled: bool = True
    context: str = ""

    @classmethod
    def promote(cls, d: Detection) -> "AcceptedDetection":
        return cls(
            id=f"{d.category.value}:{d.start}:{d.end}",
            category=d.category,
            start=d.start,
            end=d.end,
            matched_text=d.matched_text,
            confidence=d.confidence,
            source=d.source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "start": self.start,
            "end": self.end,
            "text": self.matched_text,
            "confidence": self.confidence,
            "source": self.source,
            "placeholder": self.placeholder,
            "enabled": self.enabled,
            "context": self.context,
        }


@dataclass(frozen=True, slots=True)
class ImageDetection:
    """An embedded image flagged as a logo (recurring or matching a reference)."""
    id: str
    image_id: str
    similarity: float
    fingerprint: str
    reason: str            # "reference" | "recurring"
    placeholder: str = ""
    enabled: bool = True
    category: Category = Category.IMAGE_LOGO

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "image_id": self.image_id,
            "similarity": self.similarity,
            "fingerprint": self.fingerprint,
            "reason": self.reason,
            "placeholder": self.placeholder,
            "enabled": self.enabled,
        }


@dataclass(frozen=True, slots=True)
class DetectorFailure:
    """Record of a detector that raised, or an image that could not be fingerprinted."""
    detector: str
    message: str
    kind: ErrorKind = ErrorKind.DETECTOR_FAILURE


@dataclass(slots=True)
class DetectionReport:
    """Result of ``Redactor.detect``."""
    text_length: int
    detections: tuple[AcceptedDetection, ...] = ()
    placeholders: PlaceholderMap | None = None
    failures: tuple[DetectorFailure, ...] = ()
    images: tuple[ImageDetection, ...] = ()

    @property
    def counts(self) -> dict[str, int]:
        """Accepted detections per category, text and image alike."""
        out: dict[str, int] = {}
        for d in (*self.detections, *self.images):
            out[d.category.value] = out.get(d.category.value, 0) + 1
        return out

    @property
    def confidence_buckets(self) -> dict[str, int]:
        buckets = {"high": 0, "medium": 0, "low": 0}
        for d in self.detections:
            if d.confidence >= 0.8:
                buckets["high"] += 1
            elif d.confidence >= 0.5:
                buckets["medium"] += 1
            else:
                buckets["low"] += 1
        return buckets

    def get(self, detection_id: str) -> AcceptedDetection | ImageDetection | None:
        for d in (*self.detections, *self.images):
            if d.id == detection_id:
                return d
        return None

    def with_overrides(self, overrides: dict[str, bool] | None) -> "DetectionReport":
        """Return a copy with ``enabled`` toggled per detection id.

        Raises InvalidInputError for ids the report does not contain.
        """
        if not overrides:
            return self
        from .exceptions import InvalidInputError

        known = {d.id for d in (*self.detections, *self.images)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidInputError(f"unknown detection id(s): {', '.join(unknown)}")

        detections = tuple(
            replace(d, enabled=bool(overrides[d.id])) if d.id in overrides else d
            for d in self.detections
        )
        images = tuple(
            replace(d, enabled=bool(overrides[d.id])) if d.id in overrides else d
            for d in self.images
        )
        return DetectionReport(
            text_length=self.text_length,
            detections=detections,
            placeholders=self.placeholders,
            failures=self.failures,
            images=images,
        )

    def mapping(self, *, enabled_only: bool = False) -> list[dict[str, Any]]:
        """Placeholder → original values table, in first-seen order."""
        rows: dict[str, dict[str, Any]] = {}
        entries: list[tuple[str, Category, str]] = [
            (d.placeholder, d.category, d.matched_text)
            for d in self.detections
            if d.enabled or not enabled_only
        ]
        entries += [
            (d.placeholder, d.category, d.image_id)
            for d in self.images
            if d.enabled or not enabled_only
        ]
        for placeholder, category, value in entries:
            row = rows.get(placeholder)
            if row is None:
                row = rows[placeholder] = {
                    "placeholder": placeholder,
                    "category": category.value,
                    "original_values": [],
                    "occurrences": 0,
                }
            if value not in row["original_values"]:
                row["original_values"].append(value)
            row["occurrences"] += 1
        return list(rows.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "text_length": self.text_length,
            "detections": [d.to_dict() for d in self.detections],
            "images": [d.to_dict() for d in self.images],
            "counts": self.counts,
            "confidence": self.confidence_buckets,
            "failures": [
                {"detector": f.detector, "kind": f.kind.value, "message": f.message}
                for f in self.failures
            ],
        }


# ── Structured documents ─────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class TextNode:
    """One text-bearing node of a decoded document (run, cell, line …)."""
    node_id: str
    text: str
    attrs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EmbeddedImage:
    """An image carried by a document, for logo detection."""
    image_id: str
    data: bytes
    content_type: str = "image/png"
    redacted: bool = False
    replacement_text: str = ""


@dataclass(frozen=True, slots=True)
class StructuredDocument:
    """Decoder-owned node map.  Concatenating node texts gives the canonical text."""
    nodes: tuple[TextNode, ...] = ()
    images: tuple[EmbeddedImage, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def flatten(self) -> str:
        return "".join(n.text for n in self.nodes)

    def node_spans(self) -> Iterator[tuple[TextNode, int, int]]:
        """Yield ``(node, start, end)`` with offsets into the flattened text."""
        offset = 0
        for node in self.nodes:
            end = offset + len(node.text)
            yield node, offset, end
            offset = end

    @classmethod
    def from_text(cls, text: str, node_id: str = "body") -> "StructuredDocument":
        return cls(nodes=(TextNode(node_id, text),))


@dataclass(frozen=True, slots=True)
class ImageFingerprint:
    """64-bit average hash as 16 hex characters, plus source dimensions."""
    hash: str
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class MatchResult:
    is_match: bool
    similarity: float


@dataclass(frozen=True, slots=True)
class RedactionResult:
    """Result of ``Redactor.redact``."""
    document: StructuredDocument
    sanitized_text: str
    applied: int = 0


@dataclass(slots=True)
class DocumentResult:
    """Outcome of processing one document in a batch."""
    name: str
    ok: bool
    report: DetectionReport | None = None
    redaction: RedactionResult | None = None
    output: bytes | None = None
    error: ErrorKind | None = None
    message: str = ""
