"""Redactor — the main API.  Detect first, review, then redact.

Usage:
    from docmask import Redactor, RedactorConfig, StructuredDocument

    redactor = Redactor(RedactorConfig(custom_names=["Jane Roe"]))
    report = redactor.detect("Mail jane@acme.com or Jane Roe")
    for d in report.detections:
        print(d.id, d.placeholder, d.matched_text)

    doc = StructuredDocument.from_text("Mail jane@acme.com or Jane Roe")
    result = redactor.redact(doc, report, overrides={"person:22:30": False})
    print(result.sanitized_text)   # "Mail <EMAIL_1> or Jane Roe"
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Mapping

from .applier import apply_redactions
from .exceptions import InvalidInputError, StructureMismatchError
from .names import HEURISTIC_DETECTORS, custom_detector
from .patterns import STRUCTURED_DETECTORS, Detector, run_detectors
from .resolver import precedence_table, resolve_tiered
from .types import (
    AcceptedDetection,
    Category,
    Detection,
    DetectionReport,
    ImageDetection,
    RedactionResult,
    StructuredDocument,
)
from .vault import PlaceholderMap

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10 * 1024 * 1024
LOGO_PLACEHOLDER = "[LOGO REMOVED]"


def default_categories() -> set[Category]:
    # dates are opt-in, logos are driven by LogoConfig
    return set(Category) - {Category.DATE, Category.IMAGE_LOGO}


@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    enabled_categories: set[Category] = field(default_factory=default_categories)
    # Explicit lists, always reported at confidence 1.0
    custom_names: list[str] = field(default_factory=list)
    custom_organizations: list[str] = field(default_factory=list)
    # Raw matches below this are dropped before resolution
    min_confidence: float = 0.0
    # Detections below this are reported but start disabled
    auto_enable_threshold: float = 0.5
    # Allow-list: values that should NEVER be redacted
    allow_list: set[str] = field(default_factory=set)
    precedence: dict[Category, int] | None = None
    max_workers: int = 0
    context_chars: int = 30
    max_text_length: int = MAX_TEXT_LENGTH


@dataclass
class LogoConfig:
    """Logo redaction settings."""
    enabled: bool = False
    fingerprints: list[str] = field(default_factory=list)   # reference hashes
    threshold: float = 85.0
    placeholder_text: str = LOGO_PLACEHOLDER
    detect_recurring: bool = True
    min_occurrences: int = 2


class Redactor:
    """Detection and redaction over one canonical text buffer.

    Detector order, which is also the resolver's last tie-break:
      1. user-supplied names and organisations
      2. structured patterns (email, url, iban, … domain)
      3. organisation and person heuristics

    A Redactor holds no per-document state and may be shared between
    threads; each ``detect`` call builds its own PlaceholderMap.
    """

    def __init__(self, config: RedactorConfig | None = None) -> None:
        self.config = config or RedactorConfig()
        self.detectors = self._build_detectors()
        self._precedence = precedence_table(self.config.precedence)

    def _build_detectors(self) -> list[Detector]:
        cfg = self.config
        detectors: list[Detector] = []
        if any(n.strip() for n in cfg.custom_names):
            detectors.append(custom_detector(cfg.custom_names, Category.PERSON))
        if any(n.strip() for n in cfg.custom_organizations):
            detectors.append(custom_detector(cfg.custom_organizations, Category.ORGANIZATION))
        for det in (*STRUCTURED_DETECTORS, *HEURISTIC_DETECTORS):
            if det.category in cfg.enabled_categories:
                detectors.append(det)
        return detectors

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(self, text: str) -> DetectionReport:
        """Scan *text* and return accepted, placeholder-assigned detections."""
        if not isinstance(text, str):
            raise InvalidInputError(f"text must be str, got {type(text).__name__}")
        if len(text) > self.config.max_text_length:
            raise InvalidInputError(
                f"text is {len(text)} characters, limit is {self.config.max_text_length}"
            )
        if not text:
            return DetectionReport(text_length=0, placeholders=PlaceholderMap())

        raw, failures = run_detectors(text, self.detectors, max_workers=self.config.max_workers)
        candidates = [m for m in raw if self._keep(m)]
        accepted = resolve_tiered(
            candidates, self.config.auto_enable_threshold, self._precedence
        )

        placeholders = PlaceholderMap()
        detections = placeholders.assign(
            replace(
                AcceptedDetection.promote(m),
                enabled=m.confidence >= self.config.auto_enable_threshold,
                context=self._context(text, m.start, m.end),
            )
            for m in accepted
        )

        report = DetectionReport(
            text_length=len(text),
            detections=tuple(detections),
            placeholders=placeholders,
            failures=tuple(failures),
        )
        logger.debug(
            f"Detected {len(detections)} of {len(raw)} raw matches "
            f"({len(failures)} detector failures): {report.counts}"
        )
        return report

    def _keep(self, m: Detection) -> bool:
        if m.matched_text in self.config.allow_list:
            return False
        return m.confidence >= self.config.min_confidence

    def _context(self, text: str, start: int, end: int) -> str:
        n = self.config.context_chars
        if n <= 0:
            return ""
        snippet = text[max(0, start - n):min(len(text), end + n)]
        return " ".join(snippet.split())

    # ------------------------------------------------------------------
    # Redaction
    # ------------------------------------------------------------------

    def redact(
        self,
        document: StructuredDocument,
        report: DetectionReport,
        overrides: Mapping[str, bool] | None = None,
        *,
        logo_text: str = LOGO_PLACEHOLDER,
    ) -> RedactionResult:
        """Apply the report's enabled detections to *document*.

        *overrides* maps detection ids to ``enabled``.  Raises
        InvalidInputError for unknown ids and StructureMismatchError when
        the document is not the text the report was computed on.
        """
        report = report.with_overrides(dict(overrides) if overrides else None)
        text = document.flatten()
        if len(text) != report.text_length:
            logger.error(
                f"Document is {len(text)} characters, report describes {report.text_length}"
            )
            raise StructureMismatchError("document length differs from the detection report")
        return apply_redactions(
            document, text, report.detections, report.images, logo_text=logo_text
        )

    def redact_text(
        self,
        text: str,
        overrides: Mapping[str, bool] | None = None,
    ) -> tuple[DetectionReport, RedactionResult]:
        """Detect and redact a plain string in one step."""
        report = self.detect(text)
        result = self.redact(StructuredDocument.from_text(text), report, overrides)
        return report.with_overrides(dict(overrides) if overrides else None), result

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def add_images(
        self,
        report: DetectionReport,
        images: list[ImageDetection],
    ) -> DetectionReport:
        """Attach image-logo detections, numbering them in the report's map."""
        placeholders = report.placeholders if report.placeholders is not None else PlaceholderMap()
        assigned = [
            replace(img, placeholder=placeholders.get_or_create_token(img.category, img.fingerprint))
            for img in images
        ]
        return DetectionReport(
            text_length=report.text_length,
            detections=report.detections,
            placeholders=placeholders,
            failures=report.failures,
            images=(*report.images, *assigned),
        )


def detect(text: str, config: RedactorConfig | None = None) -> DetectionReport:
    """One-shot ``Redactor(config).detect(text)``."""
    return Redactor(config).detect(text)


def redact(
    document: StructuredDocument,
    report: DetectionReport,
    overrides: Mapping[str, bool] | None = None,
    *,
    logo_text: str = LOGO_PLACEHOLDER,
) -> RedactionResult:
    """Redaction does not depend on detector configuration."""
    return Redactor().redact(document, report, overrides, logo_text=logo_text)
