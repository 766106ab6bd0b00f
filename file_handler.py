# Module for file system operations (path mapping, streaming writes, rewriting)

import json
import logging
import os
import posixpath
import re
import tempfile
from urllib.parse import urlsplit

import constants # Import constants

# Archive replay prefix left in front of embedded links, e.g.
# https://web.archive.org/web/20200101000000id_/https://example.com/a.css
ARCHIVE_PREFIX_PATTERN = re.compile(r'(?:https?:)?//web\.archive\.org/web/\d+(?:id_)?/')

PARTIAL_SUFFIX = '.part'


# --- Path Mapping ---
def target_path(output_dir, capture):
    """
    Maps a capture to its file under `output_dir/<timestamp>/`.

    Only the URL path is used: the hostname, query string and fragment are
    dropped, so `/a.css?v=1` and `/a.css?v=2` share one destination (an
    existing file is never fetched again). `;params` stay part of the path.
    Paths ending in '/' get an `index.html` leaf.
    """
    path = urlsplit(capture.original).path or '/' # keeps ;params in the last segment
    if path.endswith('/'):
        path += constants.INDEX_FILENAME
    # Dot segments must not climb out of the timestamp directory
    clean_path = posixpath.normpath('/' + path).lstrip('/')
    return os.path.join(output_dir, capture.timestamp, clean_path)


def ensure_directory(path):
    """Creates `path` and any missing parents."""
    os.makedirs(path, exist_ok=True)


# --- Saving ---
def stream_to_file(response, dest_path, transform=None):
    """
    Streams a response body to `dest_path` chunk by chunk.

    The body goes to a uniquely named sibling `.part` file that is renamed into
    place once the stream ends, so an interrupted transfer never leaves a file
    that a later run would treat as complete, and concurrent writers of the
    same destination never share a partial file (the last rename wins).
    `transform`, if given, is called with the partial file's path before the
    rename. Errors propagate after the partial file is removed.
    """
    directory, filename = os.path.split(dest_path)
    partial_path = None
    bytes_written = 0
    try:
        fd, partial_path = tempfile.mkstemp(prefix=filename + '.', suffix=PARTIAL_SUFFIX, dir=directory or None)
        with os.fdopen(fd, 'wb') as f:
            for chunk in response.iter_content(chunk_size=constants.STREAM_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    bytes_written += len(chunk)
        if transform is not None:
            transform(partial_path)
        os.replace(partial_path, dest_path)
    except BaseException:
        if partial_path and os.path.exists(partial_path):
            os.remove(partial_path)
        raise
    finally:
        response.close()

    logging.debug(f"Saved {bytes_written} bytes to {dest_path}")
    return bytes_written


def rewrite_archive_links(file_path):
    """
    Strips archive replay prefixes from links embedded in a saved HTML file.

    This is a plain text substitution, not an HTML-aware rewrite. Pages are
    rewritten while still in their partial file (see `stream_to_file`).
    Returns the number of prefixes removed.
    """
    with open(file_path, 'r', encoding='utf-8', errors='surrogateescape') as f:
        html = f.read()
    rewritten, count = ARCHIVE_PREFIX_PATTERN.subn('', html)
    if count:
        with open(file_path, 'w', encoding='utf-8', errors='surrogateescape') as f:
            f.write(rewritten)
        logging.info(f"Rewrote {count} archive links in {file_path}")
    return count


def append_debug_record(output_dir, capture):
    """Appends one JSON line describing `capture` to `<output_dir>/<timestamp>/debug.json`."""
    debug_path = os.path.join(output_dir, capture.timestamp, constants.DEBUG_FILENAME)
    ensure_directory(os.path.dirname(debug_path))
    with open(debug_path, 'a', encoding='utf-8') as f:
        f.write(json.dumps(capture.to_record()) + '\n')
    return debug_path
