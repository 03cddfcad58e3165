"""YAML/dict config loader for docmask.

Supports loading from a YAML file or a plain dict (for embedding
in a larger application config).

Example YAML:

    docmask:
      categories:
        - email
        - phone
        - iban
        - person
      custom_names:
        - Jane Roe
      custom_organizations:
        - Acme Holdings
      min_confidence: 0.5
      auto_enable_threshold: 0.5
      allow_list:
        - support@example.com
      precedence:
        phone: 70
      max_workers: 4
      logo:
        enabled: true
        threshold: 85
        fingerprints:
          - ffd8e0c0c0e0f8ff
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError
from .redactor import LogoConfig, RedactorConfig, default_categories
from .types import Category

ENV_CONFIG = "DOCMASK_CONFIG"


def _categories(values: Any, key: str) -> list[Category]:
    if isinstance(values, str):
        values = [v for v in values.split(",") if v.strip()]
    out: list[Category] = []
    for value in values or []:
        try:
            out.append(Category.parse(str(value)))
        except ValueError:
            raise ConfigurationError(f"{key}: unknown category {value!r}") from None
    return out


def _number(data: dict[str, Any], key: str, default: float, low: float, high: float) -> float:
    value = data.get(key, default)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
    if not low <= value <= high:
        raise ConfigurationError(f"{key} must be between {low:g} and {high:g}, got {value:g}")
    return value


def _strings(data: dict[str, Any], key: str) -> list[str]:
    values = data.get(key) or []
    if isinstance(values, str):
        values = [values]
    return [str(v) for v in values if str(v).strip()]


def load_config(data: dict[str, Any] | None) -> tuple[RedactorConfig, LogoConfig]:
    """Normalize a config dict (from YAML or inline) into config objects."""
    data = data or {}
    # Support nested under "docmask" key or flat
    if "docmask" in data:
        data = data["docmask"] or {}
    if not isinstance(data, dict):
        raise ConfigurationError("configuration must be a mapping")

    if "categories" in data:
        enabled = set(_categories(data["categories"], "categories"))
    else:
        enabled = default_categories()
    enabled -= set(_categories(data.get("skip_categories"), "skip_categories"))

    precedence: dict[Category, int] | None = None
    if data.get("precedence"):
        precedence = {}
        for name, rank in data["precedence"].items():
            (category,) = _categories([name], "precedence")
            try:
                precedence[category] = int(rank)
            except (TypeError, ValueError):
                raise ConfigurationError(f"precedence.{name} must be an integer") from None

    config = RedactorConfig(
        enabled_categories=enabled,
        custom_names=_strings(data, "custom_names"),
        custom_organizations=_strings(data, "custom_organizations"),
        min_confidence=_number(data, "min_confidence", 0.0, 0.0, 1.0),
        auto_enable_threshold=_number(data, "auto_enable_threshold", 0.5, 0.0, 1.0),
        allow_list=set(_strings(data, "allow_list")),
        precedence=precedence,
        max_workers=int(_number(data, "max_workers", 0, 0, 64)),
        context_chars=int(_number(data, "context_chars", 30, 0, 1000)),
    )

    logo_data = data.get("logo") or {}
    if not isinstance(logo_data, dict):
        raise ConfigurationError("logo must be a mapping")
    logo = LogoConfig(
        enabled=bool(logo_data.get("enabled", False)),
        fingerprints=_strings(logo_data, "fingerprints"),
        threshold=_number(logo_data, "threshold", 85.0, 0.0, 100.0),
        placeholder_text=str(logo_data.get("placeholder_text", LogoConfig.placeholder_text)),
        detect_recurring=bool(logo_data.get("detect_recurring", True)),
        min_occurrences=int(_number(logo_data, "min_occurrences", 2, 2, 1000)),
    )
    return config, logo


def load_from_yaml(path: str | Path) -> tuple[RedactorConfig, LogoConfig]:
    """Load config from a YAML file."""
    import yaml
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e
    return load_config(data)


def load_default() -> tuple[RedactorConfig, LogoConfig]:
    """Config from ``$DOCMASK_CONFIG`` if set, otherwise built-in defaults."""
    path = os.environ.get(ENV_CONFIG)
    if path:
        return load_from_yaml(path)
    return RedactorConfig(), LogoConfig()
