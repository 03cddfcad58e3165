"""Tests for config loading."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from docmask import Category, ConfigurationError, LogoConfig, RedactorConfig
from docmask.config import load_config, load_default, load_from_yaml


def test_defaults():
    config, logo = load_config({})
    assert config.enabled_categories == RedactorConfig().enabled_categories
    assert Category.DATE not in config.enabled_categories
    assert config.min_confidence == 0.0
    assert logo == LogoConfig()


def test_nested_key_and_values():
    config, logo = load_config({
        "docmask": {
            "categories": ["email", "CREDIT-CARD", "date"],
            "custom_names": ["Jane Roe", ""],
            "min_confidence": 0.4,
            "allow_list": ["ok@example.com"],
            "precedence": {"phone": 120},
            "logo": {"enabled": True, "threshold": 90, "fingerprints": ["0f0f0f0f0f0f0f0f"]},
        }
    })
    assert config.enabled_categories == {Category.EMAIL, Category.CREDIT_CARD, Category.DATE}
    assert config.custom_names == ["Jane Roe"]
    assert config.min_confidence == 0.4
    assert config.allow_list == {"ok@example.com"}
    assert config.precedence == {Category.PHONE: 120}
    assert logo.enabled and logo.threshold == 90.0
    assert logo.fingerprints == ["0f0f0f0f0f0f0f0f"]


def test_skip_categories():
    config, _ = load_config({"skip_categories": ["person", "organization"]})
    assert Category.PERSON not in config.enabled_categories
    assert Category.EMAIL in config.enabled_categories


@pytest.mark.parametrize("data", [
    {"categories": ["passport"]},
    {"min_confidence": 1.5},
    {"min_confidence": "high"},
    {"logo": {"threshold": 120}},
    {"precedence": {"phone": "first"}},
])
def test_invalid_config(data):
    with pytest.raises(ConfigurationError):
        load_config(data)


def test_load_from_yaml(tmp_path):
    path = tmp_path / "docmask.yaml"
    path.write_text(
        "docmask:\n"
        "  categories: [email, phone]\n"
        "  custom_organizations:\n"
        "    - Acme Holdings\n"
        "  logo:\n"
        "    enabled: true\n",
        encoding="utf-8",
    )
    config, logo = load_from_yaml(path)
    assert config.enabled_categories == {Category.EMAIL, Category.PHONE}
    assert config.custom_organizations == ["Acme Holdings"]
    assert logo.enabled


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    config, logo = load_from_yaml(path)
    assert config == RedactorConfig()
    assert logo == LogoConfig()


def test_bad_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("docmask: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_from_yaml(path)


def test_env_config(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("min_confidence: 0.7\n", encoding="utf-8")
    monkeypatch.setenv("DOCMASK_CONFIG", str(path))
    config, _ = load_default()
    assert config.min_confidence == 0.7
    monkeypatch.delenv("DOCMASK_CONFIG")
    config, _ = load_default()
    assert config.min_confidence == 0.0
