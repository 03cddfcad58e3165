"""Redaction applier: writes placeholders back into a document's text nodes.

A span inside one node is replaced in place.  A span that crosses node
boundaries puts the placeholder in the first node it touches and removes
the covered text from the following ones.  Node ids and attributes are
carried over untouched so an encoder can re-serialise the structure.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from typing import Iterable, Sequence

from .exceptions import StructureMismatchError
from .types import (
    AcceptedDetection,
    EmbeddedImage,
    ImageDetection,
    RedactionResult,
    StructuredDocument,
    TextNode,
)

logger = logging.getLogger(__name__)

# (local_start, local_end, replacement) inside one node
_Edit = tuple[int, int, str]


def _apply_edits(text: str, edits: Sequence[_Edit]) -> str:
    # right-to-left so earlier offsets stay valid
    for start, end, replacement in sorted(edits, reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def sanitize_text(text: str, detections: Iterable[AcceptedDetection]) -> str:
    """Flat-text view: every detection replaced by its placeholder."""
    return _apply_edits(text, [(d.start, d.end, d.placeholder) for d in detections])


def _node_edits(
    document: StructuredDocument,
    detections: Sequence[AcceptedDetection],
) -> dict[int, list[_Edit]]:
    """Map node index → edits, walking nodes and detections together."""
    spans = [(start, end) for _, start, end in document.node_spans()]
    edits: dict[int, list[_Edit]] = {}
    first = 0
    for d in sorted(detections, key=lambda d: d.start):
        while first < len(spans) and spans[first][1] <= d.start:
            first += 1
        placed = False
        i = first
        while i < len(spans) and spans[i][0] < d.end:
            node_start, node_end = spans[i]
            if node_start == node_end:
                i += 1
                continue
            local_start = max(d.start, node_start) - node_start
            local_end = min(d.end, node_end) - node_start
            edits.setdefault(i, []).append(
                (local_start, local_end, "" if placed else d.placeholder)
            )
            placed = True
            i += 1
    return edits


def apply_redactions(
    document: StructuredDocument,
    text: str,
    detections: Iterable[AcceptedDetection],
    images: Iterable[ImageDetection] = (),
    *,
    logo_text: str = "[LOGO REMOVED]",
) -> RedactionResult:
    """Apply enabled detections to *document*.

    *text* is the canonical buffer the detections were computed on; the
    document must flatten to exactly that text.  Raises
    StructureMismatchError if either side fails to reconcile.
    """
    if document.flatten() != text:
        logger.error("Document text does not match the detection buffer")
        raise StructureMismatchError(
            "document does not flatten to the text the detections refer to"
        )

    enabled = [d for d in detections if d.enabled]
    for d in enabled:
        if not (0 <= d.start < d.end <= len(text)) or text[d.start:d.end] != d.matched_text:
            raise StructureMismatchError(f"detection {d.id} does not match the text")

    edits = _node_edits(document, enabled)
    nodes: list[TextNode] = []
    for i, node in enumerate(document.nodes):
        if i in edits:
            node = replace(node, text=_apply_edits(node.text, edits[i]))
        nodes.append(node)

    flagged = {d.image_id for d in images if d.enabled}
    new_images: list[EmbeddedImage] = [
        replace(img, redacted=True, replacement_text=logo_text)
        if img.image_id in flagged else img
        for img in document.images
    ]

    result_doc = replace(document, nodes=tuple(nodes), images=tuple(new_images))
    sanitized = sanitize_text(text, enabled)

    if result_doc.flatten() != sanitized:
        logger.error("Redacted node map does not reconcile with the sanitized text")
        raise StructureMismatchError("redacted nodes do not flatten to the sanitized text")

    return RedactionResult(
        document=result_doc,
        sanitized_text=sanitized,
        applied=len(enabled) + sum(1 for img in new_images if img.redacted),
    )
