import pytest
import os
import json
import logging
from unittest.mock import MagicMock

import file_handler
from models import Capture

TS = "20250101123456"


# --- Tests for target_path ---

@pytest.mark.parametrize("original, expected_parts", [
    ("https://example.com/", ("index.html",)),
    ("https://example.com", ("index.html",)),
    ("https://example.com/docs/", ("docs", "index.html")),
    ("https://example.com/app.js", ("app.js",)),
    ("https://example.com/a/b/c.png", ("a", "b", "c.png")),
    ("https://example.com/about", ("about",)),
    ("https://cdn.other.net/lib/x.js", ("lib", "x.js")), # hostname is not part of the path
    ("https://example.com/../../etc/passwd", ("etc", "passwd")),
    ("https://example.com/dir/file;v=1.css", ("dir", "file;v=1.css")),
])
def test_target_path(original, expected_parts):
    path = file_handler.target_path('/out', Capture(TS, original))
    assert path == os.path.join('/out', TS, *expected_parts)


def test_target_path_docs_example_ends_with_index_html():
    path = file_handler.target_path('/out', Capture(TS, "https://example.com/docs/"))
    assert path.endswith(os.path.join(TS, "docs", "index.html"))


def test_target_path_query_and_fragment_collide():
    """Known limitation: URLs differing only in query or fragment share one destination."""
    a = file_handler.target_path('/out', Capture(TS, "https://example.com/a.css?v=1"))
    b = file_handler.target_path('/out', Capture(TS, "https://example.com/a.css?v=2#x"))
    assert a == b == os.path.join('/out', TS, "a.css")


def test_target_path_keeps_path_params_distinct():
    a = file_handler.target_path('/out', Capture(TS, "https://example.com/dir/file;v=1.css"))
    b = file_handler.target_path('/out', Capture(TS, "https://example.com/dir/file;v=2.css"))
    c = file_handler.target_path('/out', Capture(TS, "https://example.com/dir/file"))
    assert len({a, b, c}) == 3
    assert a.endswith(".css")


def test_target_path_separates_timestamps():
    a = file_handler.target_path('/out', Capture("20200101000000", "https://example.com/"))
    b = file_handler.target_path('/out', Capture("20210101000000", "https://example.com/"))
    assert a != b


# --- Tests for stream_to_file ---

def test_stream_to_file_writes_chunks_and_closes(tmp_path):
    response = MagicMock()
    response.iter_content.return_value = iter([b"abc", b"", b"def"])
    dest = str(tmp_path / "file.bin")

    written = file_handler.stream_to_file(response, dest)

    assert written == 6
    assert (tmp_path / "file.bin").read_bytes() == b"abcdef"
    response.iter_content.assert_called_once_with(chunk_size=64 * 1024)
    response.close.assert_called_once()
    assert os.listdir(tmp_path) == ["file.bin"]


def test_stream_to_file_removes_partial_on_error(tmp_path):
    def broken_stream(chunk_size):
        yield b"abc"
        raise IOError("connection reset")

    response = MagicMock()
    response.iter_content.side_effect = broken_stream
    dest = str(tmp_path / "file.bin")

    with pytest.raises(IOError):
        file_handler.stream_to_file(response, dest)

    assert os.listdir(tmp_path) == []
    response.close.assert_called_once()


def test_stream_to_file_applies_transform_before_rename(tmp_path):
    response = MagicMock()
    response.iter_content.return_value = iter([b"<a href=x>"])
    dest = str(tmp_path / "index.html")
    seen = []

    def transform(partial_path):
        seen.append((partial_path, os.path.exists(dest)))
        with open(partial_path, 'ab') as f:
            f.write(b"!")

    file_handler.stream_to_file(response, dest, transform=transform)

    assert (tmp_path / "index.html").read_bytes() == b"<a href=x>!"
    partial_path, dest_existed = seen[0]
    assert partial_path != dest and partial_path.endswith(".part")
    assert dest_existed is False


def test_stream_to_file_failed_transform_leaves_nothing(tmp_path):
    response = MagicMock()
    response.iter_content.return_value = iter([b"<html>"])
    dest = str(tmp_path / "index.html")

    with pytest.raises(OSError):
        file_handler.stream_to_file(response, dest, transform=MagicMock(side_effect=OSError("disk full")))

    assert os.listdir(tmp_path) == []
    response.close.assert_called_once()


def test_stream_to_file_concurrent_writers_do_not_share_partial(tmp_path):
    dest = str(tmp_path / "a.css")
    inner = MagicMock()
    inner.iter_content.return_value = iter([b"v2"])

    def outer_stream(chunk_size):
        yield b"v"
        # A second writer of the same destination finishes mid-stream
        assert file_handler.stream_to_file(inner, dest) == 2
        yield b"1"

    outer = MagicMock()
    outer.iter_content.side_effect = outer_stream

    assert file_handler.stream_to_file(outer, dest) == 2
    assert (tmp_path / "a.css").read_bytes() == b"v1" # last rename wins
    assert os.listdir(tmp_path) == ["a.css"]


# --- Tests for rewrite_archive_links ---

def test_rewrite_archive_links_strips_prefixes(tmp_path, caplog):
    page = tmp_path / "index.html"
    page.write_text(
        '<link href="https://web.archive.org/web/20200101000000id_/https://example.com/a.css">'
        '<img src="http://web.archive.org/web/20200101000000/https://example.com/b.png">'
        '<script src="//web.archive.org/web/20200101000000id_/https://example.com/c.js"></script>'
        '<a href="https://example.com/keep">keep</a>',
        encoding='utf-8')

    with caplog.at_level(logging.INFO):
        count = file_handler.rewrite_archive_links(str(page))

    assert count == 3
    html = page.read_text(encoding='utf-8')
    assert 'web.archive.org' not in html
    assert 'href="https://example.com/a.css"' in html
    assert 'src="https://example.com/b.png"' in html
    assert 'src="https://example.com/c.js"' in html
    assert 'href="https://example.com/keep"' in html
    assert "Rewrote 3 archive links" in caplog.text


def test_rewrite_archive_links_leaves_other_modifiers(tmp_path):
    page = tmp_path / "index.html"
    original = '<img src="https://web.archive.org/web/20200101000000im_/https://example.com/b.png">'
    page.write_text(original, encoding='utf-8')

    assert file_handler.rewrite_archive_links(str(page)) == 0
    assert page.read_text(encoding='utf-8') == original


def test_rewrite_archive_links_preserves_undecodable_bytes(tmp_path):
    page = tmp_path / "index.html"
    page.write_bytes(b'<p>caf\xe9</p><a href="https://web.archive.org/web/1id_/https://x.com/">x</a>')

    assert file_handler.rewrite_archive_links(str(page)) == 1
    assert page.read_bytes() == b'<p>caf\xe9</p><a href="https://x.com/">x</a>'


# --- Tests for append_debug_record ---

def test_append_debug_record_appends_json_lines(tmp_path):
    out = str(tmp_path)
    first = Capture(TS, "https://example.com/", "text/html")
    second = Capture(TS, "https://example.com/about")

    path = file_handler.append_debug_record(out, first)
    file_handler.append_debug_record(out, second)

    assert path == os.path.join(out, TS, "debug.json")
    with open(path, encoding='utf-8') as f:
        lines = [json.loads(line) for line in f]
    assert lines == [
        {"timestamp": TS, "original": "https://example.com/", "mimetype": "text/html"},
        {"timestamp": TS, "original": "https://example.com/about"},
    ]
