"""Per-document orchestration around the core.

Decoders, encoders and OCR engines are collaborators supplied by the
caller; only a plain-text codec ships here.  ``process_document`` never
raises for a problem with one document: the failure comes back as a
``DocumentResult`` with an ``ErrorKind`` so a batch can carry on.

Usage:
    from docmask import Redactor, PlainTextCodec, process_batch

    codec = PlainTextCodec()
    results = process_batch(
        [("notes.txt", data, "txt")],
        redactor=Redactor(), decoder=codec, encoder=codec,
    )
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Protocol

from .exceptions import DecodeError, DocmaskError, InvalidInputError, StructureMismatchError
from .fingerprint import ImageMatcher
from .redactor import LogoConfig, Redactor
from .types import (
    DetectionReport,
    DetectorFailure,
    DocumentResult,
    ErrorKind,
    ImageDetection,
    StructuredDocument,
    TextNode,
)
from .vault import PlaceholderMap

logger = logging.getLogger(__name__)


# ── Collaborator interfaces ──────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class OcrResult:
    text: str
    confidence: float
    words: list[dict[str, Any]] = field(default_factory=list)


class DocumentDecoder(Protocol):
    def decode(self, data: bytes, format_hint: str) -> StructuredDocument: ...


class DocumentEncoder(Protocol):
    def encode(self, document: StructuredDocument, format_hint: str) -> bytes: ...


class OcrEngine(Protocol):
    def recognize(self, image: bytes, language: str) -> OcrResult: ...


class PlainTextCodec:
    """Line-oriented decoder/encoder for text formats.

    Each line, terminator included, becomes one node so the flattened
    text is byte-for-byte the decoded file.
    """

    FORMATS = frozenset({"txt", "text", "md", "markdown", "csv"})

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def _check(self, format_hint: str) -> None:
        if format_hint.lower().lstrip(".") not in self.FORMATS:
            raise DecodeError(f"unsupported format {format_hint!r}", format_hint=format_hint)

    def decode(self, data: bytes, format_hint: str) -> StructuredDocument:
        self._check(format_hint)
        try:
            text = data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise DecodeError(f"not valid {self.encoding}: {e}", format_hint=format_hint) from e
        nodes = tuple(
            TextNode(node_id=f"line-{i}", text=line, attrs={"line": i})
            for i, line in enumerate(text.splitlines(keepends=True), start=1)
        )
        return StructuredDocument(nodes=nodes, metadata={"format": format_hint})

    def encode(self, document: StructuredDocument, format_hint: str) -> bytes:
        self._check(format_hint)
        return document.flatten().encode(self.encoding)


# ── Single document ──────────────────────────────────────────────────

def _ocr_nodes(document: StructuredDocument, ocr: OcrEngine, language: str) -> StructuredDocument:
    nodes: list[TextNode] = []
    for img in document.images:
        result = ocr.recognize(img.data, language)
        if not result.text:
            continue
        # keep images apart so a value never spans two of them
        text = result.text if not nodes or result.text.startswith("\n") else "\n" + result.text
        nodes.append(TextNode(
            node_id=f"ocr-{img.image_id}",
            text=text,
            attrs={"image_id": img.image_id, "ocr_confidence": result.confidence},
        ))
    return StructuredDocument(nodes=tuple(nodes), images=document.images, metadata=document.metadata)


def match_logos(
    document: StructuredDocument,
    logo: LogoConfig,
    matcher: ImageMatcher,
) -> tuple[list[ImageDetection], list[DetectorFailure]]:
    """Flag images matching a reference logo or recurring across the document.

    Images that cannot be fingerprinted are skipped and come back as
    ``FINGERPRINT_UNAVAILABLE`` notes next to the detections.
    """
    if not document.images:
        return [], []
    if not matcher.available():
        return [], [DetectorFailure(
            detector="image_matcher",
            message="image codec unavailable, logo matching skipped",
            kind=ErrorKind.FINGERPRINT_UNAVAILABLE,
        )]

    notes = [
        DetectorFailure(
            detector="image_matcher",
            message=f"could not fingerprint image {img.image_id}",
            kind=ErrorKind.FINGERPRINT_UNAVAILABLE,
        )
        for img in document.images
        if matcher.fingerprint(img.data) is None
    ]

    found: dict[str, ImageDetection] = {}
    for m in matcher.find_matches(document.images, logo.fingerprints, logo.threshold):
        found[m.image_id] = ImageDetection(
            id=f"image_logo:{m.image_id}",
            image_id=m.image_id,
            similarity=m.similarity,
            fingerprint=m.fingerprint,
            reason=m.reason,
        )
    if logo.detect_recurring:
        for group in matcher.find_recurring(
            document.images, logo.threshold, logo.min_occurrences
        ):
            # one placeholder per group: key every member by the first hash
            key = group[0].fingerprint
            for m in group:
                found.setdefault(m.image_id, ImageDetection(
                    id=f"image_logo:{m.image_id}",
                    image_id=m.image_id,
                    similarity=m.similarity,
                    fingerprint=key,
                    reason=m.reason,
                ))

    order = {img.image_id: i for i, img in enumerate(document.images)}
    return sorted(found.values(), key=lambda d: order[d.image_id]), notes


def process_document(
    name: str,
    data: bytes,
    format_hint: str,
    *,
    redactor: Redactor,
    decoder: DocumentDecoder,
    encoder: DocumentEncoder | None = None,
    ocr: OcrEngine | None = None,
    language: str = "eng",
    logo: LogoConfig | None = None,
    matcher: ImageMatcher | None = None,
    overrides: Mapping[str, bool] | None = None,
) -> DocumentResult:
    """Decode, detect, redact and (optionally) re-encode one document."""
    try:
        document = decoder.decode(data, format_hint)
    except Exception as e:
        logger.error(f"Failed to decode {name}: {e}")
        return DocumentResult(name=name, ok=False, error=ErrorKind.DECODE_FAILURE, message=str(e))

    if not document.flatten() and document.images and ocr is not None:
        try:
            document = _ocr_nodes(document, ocr, language)
        except Exception as e:
            logger.error(f"OCR of {name} failed: {e}")
            return DocumentResult(
                name=name, ok=False, error=ErrorKind.DECODE_FAILURE, message=f"OCR failed: {e}"
            )

    try:
        text = document.flatten()

        if text:
            report = redactor.detect(text)
        else:
            report = DetectionReport(text_length=0, placeholders=PlaceholderMap())

        logo = logo or LogoConfig()
        if logo.enabled:
            images, notes = match_logos(document, logo, matcher or ImageMatcher())
            if images:
                report = redactor.add_images(report, images)
            if notes:
                logger.warning(f"{name}: logo matching incomplete ({len(notes)} notes)")
                report = replace(report, failures=(*report.failures, *notes))

        redaction = redactor.redact(
            document, report, overrides, logo_text=logo.placeholder_text
        )
        report = report.with_overrides(dict(overrides) if overrides else None)
    except StructureMismatchError as e:
        logger.error(f"Redaction of {name} failed: {e}")
        return DocumentResult(name=name, ok=False, error=ErrorKind.STRUCTURE_MISMATCH, message=str(e))
    except InvalidInputError as e:
        logger.error(f"Rejected {name}: {e}")
        return DocumentResult(name=name, ok=False, error=ErrorKind.INVALID_INPUT, message=str(e))
    except DocmaskError as e:
        logger.error(f"Processing {name} failed: {e}")
        return DocumentResult(name=name, ok=False, error=e.kind, message=str(e))

    output = None
    if encoder is not None:
        try:
            output = encoder.encode(redaction.document, format_hint)
        except Exception as e:
            # the redaction is done; only re-serialisation failed
            logger.error(f"Failed to encode {name}: {e}")
            return DocumentResult(
                name=name, ok=False, report=report, redaction=redaction,
                error=ErrorKind.DECODE_FAILURE, message=f"encode failed: {e}",
            )

    return DocumentResult(name=name, ok=True, report=report, redaction=redaction, output=output)


def process_batch(
    items: Iterable[tuple[str, bytes, str]],
    **kwargs: Any,
) -> list[DocumentResult]:
    """Run ``process_document`` over ``(name, data, format_hint)`` items in order."""
    results: list[DocumentResult] = []
    for name, data, format_hint in items:
        result = process_document(name, data, format_hint, **kwargs)
        if result.ok:
            logger.info(f"{name}: {result.redaction.applied} redactions")
        results.append(result)
    return results
