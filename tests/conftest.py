import os
import sys

import pytest

# make the package importable without installing it
sys.path.insert(
    0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'lib'))

from ldbind import jsonld  # noqa: E402


def pytest_addoption(parser):
    # Do only long options for pytest integration; pytest reserves
    # lowercase single-letter short options for its own CLI flags.
    parser.addoption(
        '--loader',
        dest='loader',
        default='requests',
        help='The remote URL document loader: requests, aiohttp',
    )


def pytest_configure(config):
    # Register custom markers
    config.addinivalue_line(
        "markers", "network: marks tests as requiring network access (may be slow)"
    )


@pytest.fixture
def document_loader(request):
    """The document loader chosen with --loader."""
    loader = request.config.getoption('loader')
    if loader == 'aiohttp':
        pytest.importorskip('aiohttp')
        return jsonld.aiohttp_document_loader()
    pytest.importorskip('requests')
    return jsonld.requests_document_loader()


@pytest.fixture(autouse=True)
def no_default_fetcher(monkeypatch):
    """Every test starts with remote contexts disabled."""
    monkeypatch.setattr(jsonld, '_default_context_fetcher', None)
