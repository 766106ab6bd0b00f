import pytest
import sys
import os
import logging
from unittest.mock import MagicMock

import requests

# Ensure the project root is in the Python path for imports in tests
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from config_loader import DownloadOptions


@pytest.fixture(autouse=True)
def configure_logging(caplog):
    """Ensure logging is configured to capture DEBUG level messages for all tests."""
    caplog.set_level(logging.DEBUG, logger="root")


def make_response(status_code=200, body=b"", content_type="text/html", reason="OK"):
    """Creates a MagicMock standing in for a streamed requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.reason = reason
    response.headers = {'Content-Type': content_type} if content_type else {}
    response.iter_content = MagicMock(return_value=iter([body]))
    response.close = MagicMock()
    return response


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def options(tmp_path):
    """DownloadOptions writing under a temporary directory."""
    return DownloadOptions(output_dir=str(tmp_path / "out"), user_agent="Test User Agent", request_timeout=5)
