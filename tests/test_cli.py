"""
Unit tests for the command line front end.
"""
import io
import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "apps" / "backend"))

from domfinder.cli import main

SPEC_YAML = """
name: root
base_path: html
children:
  - name: links
    base_path: a[href]
    many: true
    extract: href
"""

PAGE = '<html><body><a href="/a">A</a><a href="/b">B</a></body></html>'


@pytest.fixture
def spec_file(tmp_path):
    path = tmp_path / "spec.yaml"
    path.write_text(SPEC_YAML, encoding="utf-8")
    return path


@pytest.fixture
def page_file(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(PAGE, encoding="utf-8")
    return path


def test_parse_file(spec_file, page_file, capsys):
    assert main([str(spec_file), str(page_file)]) == 0
    out = capsys.readouterr().out
    assert json.loads(out) == {"root": {"links": ["/a", "/b"]}}


def test_one_line_per_page(spec_file, page_file, capsys):
    assert main([str(spec_file), str(page_file), str(page_file)]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2


def test_json_spec(tmp_path, page_file, capsys):
    spec = tmp_path / "spec.json"
    spec.write_text(json.dumps({"name": "root", "base_path": "a", "extract": "href"}), encoding="utf-8")
    assert main([str(spec), str(page_file)]) == 0
    assert json.loads(capsys.readouterr().out) == {"root": "/a"}


def test_path_query(spec_file, page_file, capsys):
    assert main([str(spec_file), str(page_file), "--path", "root.links.#"]) == 0
    assert capsys.readouterr().out.strip() == "2"


def test_missing_path(spec_file, page_file, capsys):
    assert main([str(spec_file), str(page_file), "--path", "root.nothing"]) == 1
    assert capsys.readouterr().out.strip() == "null"


def test_reads_stdin(spec_file, monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO(PAGE))
    assert main([str(spec_file), "--path", "root.links.1"]) == 0
    assert json.loads(capsys.readouterr().out) == "/b"


def test_check(spec_file, capsys):
    assert main([str(spec_file), "--check"]) == 0
    assert capsys.readouterr().out.strip() == "OK: root"


def test_invalid_spec(tmp_path, capsys):
    spec = tmp_path / "bad.yaml"
    spec.write_text("name: root\nbase_path: html\n", encoding="utf-8")
    assert main([str(spec), "--check"]) == 2
    assert "invalid specification" in capsys.readouterr().err


def test_missing_spec_file(tmp_path, capsys):
    assert main([str(tmp_path / "none.yaml"), "--check"]) == 2
    assert "cannot read specification" in capsys.readouterr().err


def test_missing_html_file(spec_file, tmp_path, capsys):
    assert main([str(spec_file), str(tmp_path / "none.html")]) == 2
    assert "cannot read HTML" in capsys.readouterr().err


def test_non_utf8_html_file(spec_file, tmp_path, capsys):
    page = tmp_path / "latin1.html"
    page.write_bytes(b"<p>caf\xe9 \xff</p>")
    assert main([str(spec_file), str(page)]) == 2
    assert "cannot read HTML" in capsys.readouterr().err


def test_non_utf8_spec_file(tmp_path, capsys):
    spec = tmp_path / "spec.yaml"
    spec.write_bytes(b"name: r\xe9sultat\nbase_path: html\nextract: text\n")
    assert main([str(spec), "--check"]) == 2
    assert "cannot read specification" in capsys.readouterr().err


def test_unknown_parser(spec_file, page_file, capsys):
    assert main([str(spec_file), str(page_file), "--parser", "nosuch"]) == 2
    captured = capsys.readouterr()
    assert "unknown HTML parser" in captured.err
    assert captured.out == ""


def test_explicit_parser(spec_file, page_file, capsys):
    assert main([str(spec_file), str(page_file), "--parser", "html.parser"]) == 0
    assert json.loads(capsys.readouterr().out) == {"root": {"links": ["/a", "/b"]}}
