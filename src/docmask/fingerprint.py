"""Perceptual image matching for logo detection.

Average hash (aHash):
  1. downsample to 8x8 grayscale
  2. take the mean of the 64 samples
  3. bit i is 1 iff sample i is above the mean
  4. encode as 16 hex characters

Nothing in here raises to the caller.  A missing codec or unreadable
image yields ``None`` and every comparison against ``None`` is "no match".
"""

from __future__ import annotations
import base64
import hashlib
import io
import logging
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from .types import EmbeddedImage, ImageFingerprint, MatchResult

logger = logging.getLogger(__name__)

HASH_SIZE = 8
HASH_BITS = HASH_SIZE * HASH_SIZE
DEFAULT_THRESHOLD = 85.0

_NO_MATCH = MatchResult(is_match=False, similarity=0.0)


class ImageCodec(Protocol):
    """What the matcher needs from an image library."""

    def available(self) -> bool: ...

    def dimensions(self, data: bytes) -> tuple[int, int]: ...

    def grayscale_grid(self, data: bytes, size: int) -> bytes: ...


class PillowCodec:
    """ImageCodec backed by Pillow, imported lazily."""

    def __init__(self) -> None:
        try:
            from PIL import Image
        except ImportError:
            logger.warning("Pillow not installed, logo detection disabled")
            self._image = None
        else:
            self._image = Image

    def available(self) -> bool:
        return self._image is not None

    def dimensions(self, data: bytes) -> tuple[int, int]:
        with self._image.open(io.BytesIO(data)) as img:
            return img.size

    def grayscale_grid(self, data: bytes, size: int) -> bytes:
        with self._image.open(io.BytesIO(data)) as img:
            small = img.convert("L").resize((size, size), self._image.Resampling.LANCZOS)
            return small.tobytes()

    def thumbnail_png(self, data: bytes, max_size: int) -> bytes:
        with self._image.open(io.BytesIO(data)) as img:
            img = img.copy()
            img.thumbnail((max_size, max_size))
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()


# ── Hash arithmetic ──────────────────────────────────────────────────

def _bits(samples: bytes) -> str:
    mean = sum(samples) / len(samples)
    return "".join("1" if s > mean else "0" for s in samples)


def _bits_to_hex(bits: str) -> str:
    return "".join(f"{int(bits[i:i + 4], 2):x}" for i in range(0, len(bits), 4))


def _hex_to_bits(value: str) -> str | None:
    try:
        return "".join(f"{int(c, 16):04b}" for c in value)
    except ValueError:
        return None


def average_hash(samples: bytes) -> str:
    """Hex aHash of a row-major grayscale grid."""
    return _bits_to_hex(_bits(samples))


def hamming_distance(a: str, b: str) -> int:
    """Number of differing bits.  Unequal lengths count as maximally different."""
    bits_a, bits_b = _hex_to_bits(a) or "", _hex_to_bits(b) or ""
    if not bits_a or len(bits_a) != len(bits_b):
        return max(len(bits_a), len(bits_b), HASH_BITS)
    return sum(1 for x, y in zip(bits_a, bits_b) if x != y)


def similarity(a: str, b: str) -> float:
    """Percentage of matching bits, rounded to two decimals; 0.0 if incomparable."""
    bits_a, bits_b = _hex_to_bits(a), _hex_to_bits(b)
    if not bits_a or not bits_b or len(bits_a) != len(bits_b):
        return 0.0
    total = len(bits_a)
    return round(100 * (total - hamming_distance(a, b)) / total, 2)


def _as_hash(fp: ImageFingerprint | str | None) -> str | None:
    if fp is None:
        return None
    return fp.hash if isinstance(fp, ImageFingerprint) else fp


# ── Matcher ──────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class ImageMatch:
    image_id: str
    fingerprint: str
    similarity: float
    reason: str         # "reference" | "recurring"


class ImageMatcher:
    """Fingerprints and compares images for one redaction session.

    Fingerprints are cached by content hash for the matcher's lifetime.
    """

    def __init__(self, codec: ImageCodec | None = None) -> None:
        self.codec = codec if codec is not None else PillowCodec()
        self._cache: dict[str, ImageFingerprint | None] = {}

    def available(self) -> bool:
        return self.codec.available()

    def fingerprint(self, data: bytes) -> ImageFingerprint | None:
        if not data or not self.codec.available():
            return None
        key = hashlib.sha256(data).hexdigest()
        if key in self._cache:
            return self._cache[key]
        try:
            width, height = self.codec.dimensions(data)
            grid = self.codec.grayscale_grid(data, HASH_SIZE)
            fp = ImageFingerprint(hash=average_hash(grid), width=width, height=height)
        except Exception as e:
            logger.warning(f"Failed to compute perceptual hash: {e}")
            fp = None
        self._cache[key] = fp
        return fp

    def compare_images(
        self, a: bytes, b: bytes, threshold: float = DEFAULT_THRESHOLD
    ) -> MatchResult:
        return self.compare_to_fingerprint(a, self.fingerprint(b), threshold)

    def compare_to_fingerprint(
        self,
        data: bytes,
        fingerprint: ImageFingerprint | str | None,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> MatchResult:
        target = _as_hash(fingerprint)
        fp = self.fingerprint(data)
        if fp is None or target is None:
            return _NO_MATCH
        score = similarity(fp.hash, target)
        return MatchResult(is_match=score >= threshold, similarity=score)

    def find_matches(
        self,
        images: Iterable[EmbeddedImage],
        references: Sequence[ImageFingerprint | str],
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[ImageMatch]:
        """Images resembling any reference logo, with their best score."""
        targets = [h for h in (_as_hash(r) for r in references) if h]
        out: list[ImageMatch] = []
        if not targets:
            return out
        for img in images:
            fp = self.fingerprint(img.data)
            if fp is None:
                continue
            best = max(similarity(fp.hash, t) for t in targets)
            if best >= threshold:
                out.append(ImageMatch(img.image_id, fp.hash, best, "reference"))
        return out

    def find_recurring(
        self,
        images: Iterable[EmbeddedImage],
        threshold: float = DEFAULT_THRESHOLD,
        min_occurrences: int = 2,
    ) -> list[list[ImageMatch]]:
        """Group near-duplicate images; keep groups of at least *min_occurrences*.

        Each image joins the first group whose first member it matches.
        """
        groups: list[list[ImageMatch]] = []
        for img in images:
            fp = self.fingerprint(img.data)
            if fp is None:
                continue
            for group in groups:
                score = similarity(fp.hash, group[0].fingerprint)
                if score >= threshold:
                    group.append(ImageMatch(img.image_id, fp.hash, score, "recurring"))
                    break
            else:
                groups.append([ImageMatch(img.image_id, fp.hash, 100.0, "recurring")])
        return [g for g in groups if len(g) >= min_occurrences]

    def thumbnail(self, data: bytes, max_size: int = 256) -> str | None:
        """Base64 PNG no larger than *max_size* on either side, or None."""
        if not self.codec.available() or not hasattr(self.codec, "thumbnail_png"):
            return None
        try:
            return base64.b64encode(self.codec.thumbnail_png(data, max_size)).decode("ascii")
        except Exception as e:
            logger.warning(f"Failed to create thumbnail: {e}")
            return None


# Module-level conveniences.  The codec is shared; the cache is per call.

_codec: PillowCodec | None = None


def _default_codec() -> PillowCodec:
    global _codec
    if _codec is None:
        _codec = PillowCodec()
    return _codec


def fingerprint_image(data: bytes) -> ImageFingerprint | None:
    return ImageMatcher(_default_codec()).fingerprint(data)


def compare_images(a: bytes, b: bytes, threshold: float = DEFAULT_THRESHOLD) -> MatchResult:
    return ImageMatcher(_default_codec()).compare_images(a, b, threshold)


def compare_to_fingerprint(
    data: bytes,
    fingerprint: ImageFingerprint | str | None,
    threshold: float = DEFAULT_THRESHOLD,
) -> MatchResult:
    return ImageMatcher(_default_codec()).compare_to_fingerprint(data, fingerprint, threshold)
