# Module for loading and validating configuration
import json
import re
from dataclasses import dataclass, fields, replace
from typing import Optional

import constants # Import constants

DATE_BOUND_PATTERN = re.compile(r'^\d{4,14}$') # YYYYMMDD, or any timestamp prefix


@dataclass(frozen=True)
class DownloadOptions:
    """Immutable settings consumed by the download pipeline.

    Passed explicitly into every entry point; nothing in the pipeline reads
    options from module state.
    """
    output_dir: str = constants.DEFAULT_OUTPUT_DIR
    concurrency: int = constants.DEFAULT_CONCURRENCY
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    rewrite: bool = False
    debug: bool = False
    include_external: bool = False
    no_dedup: bool = False
    user_agent: str = constants.DEFAULT_USER_AGENT
    request_timeout: float = constants.DEFAULT_TIMEOUT
    cdx_api_url: str = constants.CDX_API_URL
    wayback_base_url: str = constants.WAYBACK_BASE_URL

    @property
    def inner_concurrency(self):
        """Worker count for a single page's asset burst, clamped to 2..10."""
        return max(constants.MIN_ASSET_CONCURRENCY,
                   min(constants.MAX_ASSET_CONCURRENCY, self.concurrency))


OPTION_KEYS = frozenset(f.name for f in fields(DownloadOptions))
BOOLEAN_KEYS = ('rewrite', 'debug', 'include_external', 'no_dedup')
STRING_KEYS = ('output_dir', 'user_agent', 'cdx_api_url', 'wayback_base_url')


def validate_options(values):
    """Validates a mapping of option values. Raises ValueError on the first problem."""
    unknown_keys = sorted(set(values) - OPTION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown_keys)}")

    if 'concurrency' in values:
        concurrency = values['concurrency']
        # bool is an int subclass; reject it explicitly
        if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
            raise ValueError("Config 'concurrency' must be a positive integer.")
    if 'request_timeout' in values:
        timeout = values['request_timeout']
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            raise ValueError("Config 'request_timeout' must be a positive number.")
    for key in ('from_date', 'to_date'):
        value = values.get(key)
        if value is not None and (not isinstance(value, str) or not DATE_BOUND_PATTERN.match(value)):
            raise ValueError(f"Config '{key}' must be a digit string like YYYYMMDD, got {value!r}.")
    for key in BOOLEAN_KEYS:
        if key in values and not isinstance(values[key], bool):
            raise ValueError(f"Config '{key}' must be true or false.")
    for key in STRING_KEYS:
        if key in values and (not isinstance(values[key], str) or not values[key]):
            raise ValueError(f"Config '{key}' must be a non-empty string.")


def load_config(config_path=constants.DEFAULT_CONFIG_FILE):
    """Loads configuration from a JSON file and validates it.

    Returns a dict holding only the keys present in the file; defaults are
    applied later by build_options.
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except FileNotFoundError:
        raise # Missing file is the caller's decision
    except json.JSONDecodeError as e:
        raise ValueError(f"Error decoding JSON from config file '{config_path}': {e}") from e

    if not isinstance(config, dict):
        raise ValueError(f"Config file '{config_path}' must contain a JSON object.")

    try:
        validate_options(config)
    except ValueError as e:
        raise ValueError(f"Invalid config file '{config_path}': {e}") from e
    return config


def build_options(overrides=None, config_path=None):
    """Builds DownloadOptions from defaults, an optional config file, then overrides.

    Overrides whose value is None are ignored so that command-line flags that
    were not given do not mask config file values.
    """
    values = {}
    if config_path:
        values.update(load_config(config_path))
    if overrides:
        values.update({key: value for key, value in overrides.items() if value is not None})
    validate_options(values)
    return replace(DownloadOptions(), **values)
