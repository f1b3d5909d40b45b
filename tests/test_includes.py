import asyncio
import logging

import filtercompiler.includes as includes
from filtercompiler.context import BuildContext
from filtercompiler.includes import IncludeDirective, include, parse_include_line


def test_parse_include_line_with_options():
    assert parse_include_line('@include "frag.txt" /stripComments /exclude="ex.txt"') == IncludeDirective(
        url="frag.txt", strip_comments=True, exclude="ex.txt",
    )


def test_parse_include_line_plain():
    assert parse_include_line("@include https://example.org/list.txt") == IncludeDirective(
        url="https://example.org/list.txt", strip_comments=False, exclude=None,
    )


def test_parse_include_line_without_url():
    assert parse_include_line("@include").url == ""


def test_include_local_file_strips_comments(tmp_path):
    (tmp_path / "frag.txt").write_text("! fragment\n||a.com^\r\n\r\n||b.com^$xhr", encoding="utf-8")

    result = asyncio.run(include("@include frag.txt /stripComments", BuildContext(tmp_path)))

    assert result == ["||a.com^", "||b.com^$xmlhttprequest"]


def test_include_keeps_comments_without_option(tmp_path):
    (tmp_path / "frag.txt").write_text("! fragment\n||a.com^", encoding="utf-8")

    result = asyncio.run(include('@include "frag.txt"', BuildContext(tmp_path)))

    assert result == ["! fragment", "||a.com^"]


def test_include_applies_nested_exclusions_before_stripping(tmp_path, caplog):
    (tmp_path / "frag.txt").write_text("! ads section\n! other\n||ads.a.com^\n||b.com^", encoding="utf-8")
    (tmp_path / "frag-exclude.txt").write_text("ads", encoding="utf-8")
    line = '@include frag.txt /stripComments /exclude="frag-exclude.txt"'

    with caplog.at_level(logging.INFO, logger="filtercompiler.exclusions"):
        result = asyncio.run(include(line, BuildContext(tmp_path)))

    assert result == ["||b.com^"]
    # The "! ads section" comment is still present when exclusions run
    assert "Excluded lines: 2" in caplog.text


def test_include_does_not_expand_nested_includes(tmp_path):
    (tmp_path / "frag.txt").write_text("@include other.txt\n||a.com^", encoding="utf-8")
    (tmp_path / "other.txt").write_text("||other.com^", encoding="utf-8")

    result = asyncio.run(include("@include frag.txt", BuildContext(tmp_path)))

    assert result == ["@include other.txt", "||a.com^"]


def test_missing_include_contributes_nothing(tmp_path):
    assert asyncio.run(include("@include missing.txt", BuildContext(tmp_path))) == []


def test_include_without_url_contributes_nothing(tmp_path):
    assert asyncio.run(include("@include ", BuildContext(tmp_path))) == []


def test_remote_include_is_downloaded(tmp_path, monkeypatch):
    requested = []

    async def fake_fetch(url, session=None, timeout=0, retries=0):
        requested.append(url)
        return "! remote\nexample.com##h1:style(color: red)"

    monkeypatch.setattr(includes, "fetch_text", fake_fetch)

    result = asyncio.run(include("@include https://example.org/list.txt /stripComments", BuildContext(tmp_path)))

    assert requested == ["https://example.org/list.txt"]
    assert result == ["example.com#$#h1 { color: red }"]


def test_failed_remote_include_contributes_nothing(tmp_path, monkeypatch):
    async def fake_fetch(url, session=None, timeout=0, retries=0):
        return None

    monkeypatch.setattr(includes, "fetch_text", fake_fetch)

    assert asyncio.run(include("@include https://example.org/list.txt", BuildContext(tmp_path))) == []
