"""docmask — deterministic detection and redaction of sensitive values in documents."""

from .redactor import Redactor, RedactorConfig, LogoConfig, detect, redact
from .vault import PlaceholderMap
from .fingerprint import ImageMatcher, PillowCodec, compare_images, compare_to_fingerprint, fingerprint_image
from .pipeline import PlainTextCodec, process_batch, process_document
from .config import load_config, load_from_yaml
from .exceptions import (
    DocmaskError, ConfigurationError, InvalidInputError, DecodeError, StructureMismatchError,
)
from .types import (
    Category, ErrorKind, Detection, AcceptedDetection, ImageDetection, DetectionReport,
    TextNode, EmbeddedImage, StructuredDocument, ImageFingerprint, MatchResult,
    RedactionResult, DocumentResult,
)

__all__ = [
    "Redactor", "RedactorConfig", "LogoConfig", "detect", "redact",
    "PlaceholderMap",
    "ImageMatcher", "PillowCodec", "compare_images", "compare_to_fingerprint", "fingerprint_image",
    "PlainTextCodec", "process_batch", "process_document",
    "load_config", "load_from_yaml",
    "DocmaskError", "ConfigurationError", "InvalidInputError", "DecodeError",
    "StructureMismatchError",
    "Category", "ErrorKind", "Detection", "AcceptedDetection", "ImageDetection",
    "DetectionReport", "TextNode", "EmbeddedImage", "StructuredDocument",
    "ImageFingerprint", "MatchResult", "RedactionResult", "DocumentResult",
]
__version__ = "0.1.0"
