# Module for HTML asset discovery

import html
import logging
import re
from typing import NamedTuple, Optional, Set
from urllib.parse import urljoin, urlparse

# Set up a specific logger for this module
logger = logging.getLogger(__name__)

# Attribute values are matched within a single line; a value broken across
# lines (e.g. a multi-line srcset) is not picked up.
ATTRIBUTE_PATTERN = re.compile(r'\b(?:src|href)=("|\')(.*?)\1', re.IGNORECASE)
SRCSET_PATTERN = re.compile(r'\bsrcset=("|\')(.*?)\1', re.IGNORECASE)
FETCHABLE_URL_PATTERN = re.compile(r'^(?:https?:)?/', re.IGNORECASE)
EXCLUDED_SCHEMES = ('data:', 'javascript:')


class AssetScan(NamedTuple):
    """Outcome of reading a saved page back and scanning it for assets.

    `ok` is False when the page could not be read; `urls` is then empty and
    `error` holds the reason. A readable page without assets gives ok=True
    and an empty set.
    """
    ok: bool
    urls: Set[str]
    error: Optional[str] = None


# --- Asset Discovery ---
def _iter_candidates(html_content):
    for match in ATTRIBUTE_PATTERN.finditer(html_content):
        yield match.group(2)
    for match in SRCSET_PATTERN.finditer(html_content):
        for descriptor in match.group(2).split(','):
            tokens = descriptor.split()
            if tokens:
                yield tokens[0] # Drop the 1x / 640w part


def extract_asset_urls(html_content, base_url):
    """
    Finds candidate asset URLs in raw HTML by scanning src, href and srcset.

    No DOM is built: attribute values are matched textually, resolved against
    `base_url`, and kept only when they are http(s) or protocol-relative.
    Values that cannot be resolved are dropped. Returns a set.
    """
    urls = set()
    if not html_content:
        return urls

    for candidate in _iter_candidates(html_content):
        candidate = html.unescape(candidate).strip()
        if not candidate:
            continue
        try:
            absolute_url = urljoin(base_url, candidate)
        except ValueError:
            continue
        if absolute_url.lower().startswith(EXCLUDED_SCHEMES):
            continue
        if FETCHABLE_URL_PATTERN.match(absolute_url):
            urls.add(absolute_url)
    return urls


def _hostname(url):
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def partition_by_host(asset_urls, page_url):
    """
    Splits asset URLs into (same_host, other) relative to `page_url`'s hostname.

    URLs whose hostname cannot be parsed are left out of both lists.
    """
    page_host = _hostname(page_url)
    same_host, other = [], []
    for url in sorted(asset_urls):
        host = _hostname(url)
        if host is None:
            continue
        if host == page_host:
            same_host.append(url)
        else:
            other.append(url)
    return same_host, other


def scan_page_assets(file_path, page_url):
    """Reads a saved page back and extracts its asset URLs, reporting failure explicitly."""
    try:
        with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
            html_content = f.read()
    except OSError as e:
        logger.debug(f"Could not read {file_path} for asset discovery: {e}")
        return AssetScan(False, set(), str(e))

    urls = extract_asset_urls(html_content, page_url)
    logger.debug(f"Found {len(urls)} candidate assets in {file_path}")
    return AssetScan(True, urls)
