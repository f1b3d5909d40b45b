import asyncio
import json

import pytest

from filtercompiler.builder import (
    MetadataError,
    TemplateNotFoundError,
    build_filter,
    format_time_updated,
    make_header,
    Metadata,
)
from filtercompiler.context import BuildContext
from filtercompiler.version import Revision


def write_filter_dir(path, template="||a.com^", metadata=None):
    path.mkdir(parents=True, exist_ok=True)
    if template is not None:
        (path / "template.txt").write_text(template, encoding="utf-8")
    if metadata is None:
        metadata = {"name": "Test Filter", "description": "Test rules", "expires": "4 days"}
    if metadata is not False:
        (path / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
    return path


def build(path):
    return asyncio.run(build_filter(path, BuildContext(path)))


def test_make_header():
    header = make_header(Metadata("Name", "Desc", 2), Revision("1.0.0.1", 0))
    assert header == [
        "! Title: Name",
        "! Description: Desc",
        "! Version: 1.0.0.1",
        "! TimeUpdated: Thu Jan 01 1970",
        "! Expires: 2 (update frequency)",
    ]


def test_end_to_end_build(tmp_path):
    filter_dir = write_filter_dir(
        tmp_path / "base",
        template="! Rules\n@include frag.txt\n||literal-b.com^\n||literal-a.com^",
    )
    (filter_dir / "frag.txt").write_text(
        "||frag-one.com^\n||frag-two.com^\n||literal-a.com^", encoding="utf-8"
    )
    (filter_dir / "exclude.txt").write_text("frag-two", encoding="utf-8")
    (filter_dir / "revision.json").write_text(
        json.dumps({"version": "1.0.0.4", "timeUpdated": 1000}), encoding="utf-8"
    )

    summary = build(filter_dir)

    revision = json.loads((filter_dir / "revision.json").read_text(encoding="utf-8"))
    assert revision["version"] == "1.0.0.5"
    assert revision["timeUpdated"] > 1000
    assert summary.version == "1.0.0.5"
    assert summary.rules == 4

    content = (filter_dir / "filter.txt").read_bytes().decode("utf-8")
    assert content == "\r\n".join([
        "! Title: Test Filter",
        "! Description: Test rules",
        "! Version: 1.0.0.5",
        f"! TimeUpdated: {format_time_updated(revision['timeUpdated'])}",
        "! Expires: 4 days (update frequency)",
        "! Rules",
        "||frag-one.com^",
        "||literal-a.com^",
        "||literal-b.com^",
    ])


def test_first_build_starts_at_baseline(tmp_path):
    filter_dir = write_filter_dir(tmp_path / "fresh")

    build(filter_dir)

    revision = json.loads((filter_dir / "revision.json").read_text(encoding="utf-8"))
    assert revision["version"] == "1.0.0.0"


def test_unreadable_revision_falls_back_to_baseline(tmp_path):
    filter_dir = write_filter_dir(tmp_path / "broken-revision")
    (filter_dir / "revision.json").write_text("{not json", encoding="utf-8")

    assert build(filter_dir).version == "1.0.0.0"


def test_missing_template_is_fatal(tmp_path):
    filter_dir = write_filter_dir(tmp_path / "no-template", template=None)

    with pytest.raises(TemplateNotFoundError):
        build(filter_dir)

    assert not (filter_dir / "filter.txt").exists()


@pytest.mark.parametrize("metadata", [False, "{broken", '["a list"]', '{"name": "n"}'])
def test_bad_metadata_is_fatal_and_keeps_previous_output(tmp_path, metadata):
    filter_dir = write_filter_dir(tmp_path / "bad-metadata", metadata=False)
    if metadata is not False:
        (filter_dir / "metadata.json").write_text(metadata, encoding="utf-8")
    (filter_dir / "filter.txt").write_text("previous", encoding="utf-8")
    (filter_dir / "revision.json").write_text('{"version": "1.0.0.1", "timeUpdated": 1}', encoding="utf-8")

    with pytest.raises(MetadataError):
        build(filter_dir)

    assert (filter_dir / "filter.txt").read_text(encoding="utf-8") == "previous"
    assert json.loads((filter_dir / "revision.json").read_text(encoding="utf-8"))["version"] == "1.0.0.1"
