"""Tests for the command-line front end."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import io
import json

import pytest

from docmask.cli import main


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch):
    monkeypatch.delenv("DOCMASK_CONFIG", raising=False)


def _run(monkeypatch, capsys, argv, stdin=""):
    monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    code = main(argv)
    out, err = capsys.readouterr()
    return code, out, err


def test_detect(monkeypatch, capsys):
    code, out, _ = _run(monkeypatch, capsys, ["detect"], "Contact test@example.com")
    assert code == 0
    report = json.loads(out)
    assert report["counts"] == {"email": 1}
    assert report["detections"][0]["id"] == "email:8:24"


def test_redact_text_with_disable(monkeypatch, capsys):
    code, out, _ = _run(
        monkeypatch, capsys,
        ["redact-text", "--disable", "email:8:24"],
        "Contact test@example.com or bob@example.com",
    )
    assert code == 0
    data = json.loads(out)
    assert data["text"] == "Contact test@example.com or <EMAIL_2>"
    assert [row["placeholder"] for row in data["mapping"]] == ["<EMAIL_2>"]


def test_global_options(monkeypatch, capsys):
    code, out, _ = _run(
        monkeypatch, capsys,
        ["--categories", "phone", "--names", "Jane Roe", "redact-text"],
        "Jane Roe, jane@acme.com, 555-123-4567",
    )
    assert code == 0
    assert json.loads(out)["text"] == "<PERSON_1>, jane@acme.com, <PHONE_1>"


def test_redact_file(tmp_path, monkeypatch, capsys):
    good = tmp_path / "notes.txt"
    good.write_text("mail a@b.io\n", encoding="utf-8")
    bad = tmp_path / "scan.pdf"
    bad.write_bytes(b"%PDF")
    out_dir = tmp_path / "out"

    code, _, err = _run(
        monkeypatch, capsys,
        ["redact-file", str(good), str(bad), "--out-dir", str(out_dir), "--mapping"],
    )
    assert code == 1
    assert "scan.pdf: decode_failure" in err
    assert (out_dir / "sanitized_notes.txt").read_text(encoding="utf-8") == "mail <EMAIL_1>\n"
    mapping = json.loads((out_dir / "mapping_notes.txt.json").read_text(encoding="utf-8"))
    assert mapping[0]["original_values"] == ["a@b.io"]


def test_unknown_category_is_an_error(monkeypatch, capsys):
    code, _, _ = _run(monkeypatch, capsys, ["--categories", "passport", "detect"], "x")
    assert code == 2


def test_compare(tmp_path, monkeypatch, capsys):
    Image = pytest.importorskip("PIL.Image")
    path = tmp_path / "logo.png"
    img = Image.new("L", (32, 32), 0)
    img.paste(255, (16, 0, 32, 32))
    img.save(path)

    code, out, _ = _run(monkeypatch, capsys, ["compare", str(path), str(path)])
    assert code == 0
    assert json.loads(out) == {"is_match": True, "similarity": 100.0}

    code, out, _ = _run(monkeypatch, capsys, ["fingerprint", str(path)])
    assert code == 0
    data = json.loads(out)
    assert data["available"] and len(data["hash"]) == 16
