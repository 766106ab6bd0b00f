# Module for fetching content/assets from Wayback Machine

import logging
import os
import posixpath
from urllib.parse import urldefrag

import requests

import constants
from file_handler import ensure_directory, rewrite_archive_links, stream_to_file, target_path
from models import Capture
from .decorators import retry_request # Import the decorator


# --- Replay URL Building ---
def replay_modifier_for(original_url):
    """Picks the replay modifier from the URL's file extension."""
    path = urldefrag(original_url)[0].split('?')[0].lower()
    extension = posixpath.splitext(path)[1].lstrip('.')
    if extension in constants.IMAGE_EXTENSIONS:
        return constants.MODIFIER_IMAGE
    if extension == 'css':
        return constants.MODIFIER_CSS
    if extension == 'js':
        return constants.MODIFIER_JS
    return constants.MODIFIER_IDENTITY # HTML and everything else, served as archived


def wayback_url_for(original_url, timestamp, base_url=constants.WAYBACK_BASE_URL):
    """Returns the replay URL for `original_url` as captured at `timestamp`."""
    modifier = replay_modifier_for(original_url)
    return f"{base_url}{timestamp}{modifier}/{original_url}"


# --- Fetching ---
@retry_request()
def open_replay_stream(replay_url, options):
    """Issues one streaming GET for a replay URL. Retries are handled by the decorator."""
    logging.debug(f"Attempting to fetch: {replay_url}")
    headers = {'User-Agent': options.user_agent}
    return requests.get(replay_url, headers=headers, timeout=options.request_timeout, stream=True)


def fetch_replay_to_file(replay_url, dest_path, options, rewrite_html=False):
    """
    Downloads `replay_url` into `dest_path`, retrying non-2xx answers.

    With `rewrite_html`, a `text/html` body has its archive link prefixes
    stripped before it lands at `dest_path`.

    Returns the response Content-Type (empty string when absent).
    Raises FetchError once all attempts fail; transport errors propagate.
    """
    response = open_replay_stream(replay_url, options=options)
    content_type = response.headers.get('Content-Type', '')
    transform = None
    if rewrite_html and 'text/html' in content_type.lower():
        transform = rewrite_archive_links
    stream_to_file(response, dest_path, transform=transform)
    logging.debug(f"Successfully fetched {replay_url} -> {dest_path}")
    return content_type


def download_url_to_path(output_dir, timestamp, original_url, options):
    """
    Mirrors one archived resource under `output_dir/<timestamp>/`.

    Returns the destination path, or None when the file already exists (no
    request is made in that case).
    """
    dest_path = target_path(output_dir, Capture(timestamp, original_url))
    if os.path.exists(dest_path):
        logging.debug(f"Skipping existing file: {dest_path}")
        return None

    ensure_directory(os.path.dirname(dest_path))
    replay_url = wayback_url_for(original_url, timestamp, options.wayback_base_url)
    fetch_replay_to_file(replay_url, dest_path, options)
    return dest_path
