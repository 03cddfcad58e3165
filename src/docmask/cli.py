"""CLI interface for docmask.

Usage:
    # Detection report (stdin: text, stdout: JSON)
    echo 'Contact test@example.com' | docmask detect

    # Redact text, leaving one detection in place
    echo 'Contact test@example.com or bob@example.com' | \
        docmask redact-text --disable email:28:43

    # Redact files into a directory, with a mapping table per file
    docmask --names "Jane Roe" redact-file notes.txt minutes.md --out-dir out --mapping

    # Perceptual fingerprints
    docmask fingerprint logo.png
    docmask compare a.png b.png --threshold 90

A config file can be given with --config or the DOCMASK_CONFIG variable.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .config import ENV_CONFIG, load_config, load_from_yaml
from .exceptions import DocmaskError
from .fingerprint import DEFAULT_THRESHOLD, ImageMatcher
from .pipeline import PlainTextCodec, process_batch
from .redactor import LogoConfig, Redactor, RedactorConfig
from .types import Category

logger = logging.getLogger("docmask.cli")


def _load(args: argparse.Namespace) -> tuple[RedactorConfig, LogoConfig]:
    path = args.config or os.environ.get(ENV_CONFIG)
    config, logo = load_from_yaml(path) if path else load_config({})
    if args.categories:
        config.enabled_categories = {
            Category.parse(c) for c in args.categories.split(",") if c.strip()
        }
    if args.names:
        config.custom_names += [n.strip() for n in args.names.split(",") if n.strip()]
    if args.orgs:
        config.custom_organizations += [n.strip() for n in args.orgs.split(",") if n.strip()]
    if args.min_confidence is not None:
        config.min_confidence = args.min_confidence
    return config, logo


def _dump(obj: object) -> None:
    json.dump(obj, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_detect(args: argparse.Namespace) -> int:
    """Detection report for text on stdin."""
    config, _ = _load(args)
    report = Redactor(config).detect(sys.stdin.read())
    _dump(report.to_dict())
    return 0


def cmd_redact_text(args: argparse.Namespace) -> int:
    """Redact plain text on stdin."""
    config, _ = _load(args)
    overrides = {d: False for d in args.disable}
    report, result = Redactor(config).redact_text(sys.stdin.read(), overrides)
    _dump({
        "text": result.sanitized_text,
        "detections": [d.to_dict() for d in report.detections],
        "mapping": report.mapping(enabled_only=True),
    })
    return 0


def cmd_redact_file(args: argparse.Namespace) -> int:
    """Redact text files into --out-dir."""
    config, logo = _load(args)
    codec = PlainTextCodec()
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    items = []
    for p in args.paths:
        path = Path(p)
        items.append((path.name, path.read_bytes(), path.suffix.lstrip(".") or "txt"))

    results = process_batch(
        items, redactor=Redactor(config), decoder=codec, encoder=codec, logo=logo
    )
    status = 0
    for result in results:
        if not result.ok:
            sys.stderr.write(f"{result.name}: {result.error.value}: {result.message}\n")
            status = 1
            continue
        (out_dir / f"sanitized_{result.name}").write_bytes(result.output)
        if args.mapping:
            mapping = result.report.mapping(enabled_only=True)
            (out_dir / f"mapping_{result.name}.json").write_text(
                json.dumps(mapping, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        sys.stderr.write(f"{result.name}: {result.redaction.applied} redactions\n")
    return status


def cmd_fingerprint(args: argparse.Namespace) -> int:
    """Perceptual fingerprint of an image."""
    matcher = ImageMatcher()
    fp = matcher.fingerprint(Path(args.image).read_bytes())
    if fp is None:
        _dump({"available": False})
        return 1
    _dump({"available": True, "hash": fp.hash, "width": fp.width, "height": fp.height})
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two images."""
    matcher = ImageMatcher()
    result = matcher.compare_images(
        Path(args.a).read_bytes(), Path(args.b).read_bytes(), args.threshold
    )
    _dump({"is_match": result.is_match, "similarity": result.similarity})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmask",
        description="Detect and redact sensitive values in documents",
    )
    parser.add_argument("--config", default=None, help=f"YAML config (default: ${ENV_CONFIG})")
    parser.add_argument("--categories", default="", help="Comma-separated categories to detect")
    parser.add_argument("--names", default="", help="Comma-separated names to always redact")
    parser.add_argument("--orgs", default="", help="Comma-separated organisations to always redact")
    parser.add_argument("--min-confidence", type=float, default=None, help="Drop matches below this")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("detect", help="Detection report (text on stdin)")

    p = sub.add_parser("redact-text", help="Redact plain text (stdin)")
    p.add_argument("--disable", action="append", default=[], metavar="ID",
                   help="Detection id to leave unredacted (repeatable)")

    p = sub.add_parser("redact-file", help="Redact text files")
    p.add_argument("paths", nargs="+", metavar="PATH")
    p.add_argument("--out-dir", required=True, help="Output directory")
    p.add_argument("--mapping", action="store_true", help="Also write mapping_<name>.json")

    p = sub.add_parser("fingerprint", help="Perceptual hash of an image")
    p.add_argument("image")

    p = sub.add_parser("compare", help="Compare two images")
    p.add_argument("a")
    p.add_argument("b")
    p.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cmds = {
        "detect": cmd_detect,
        "redact-text": cmd_redact_text,
        "redact-file": cmd_redact_file,
        "fingerprint": cmd_fingerprint,
        "compare": cmd_compare,
    }
    try:
        return cmds[args.command](args)
    except (DocmaskError, ValueError, OSError) as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
