import os
from pathlib import Path

import pytest

_LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "integration": pytest.mark.integration,
    "bdd": pytest.mark.bdd,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean config environment to run tests against",
    )


def pytest_sessionstart(session):
    """Select the Protean config overlay before any domain is initialized."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Mark each test with the layer its directory belongs to."""
    for item in items:
        parts = Path(str(item.fspath)).parts
        layer = next((part for part in parts if part in _LAYER_MARKERS), None)
        if layer is None:
            continue

        item.add_marker(_LAYER_MARKERS[layer])
        # API tests run the whole request stack
        if layer == "integration" and not any(m.name == "fast" for m in item.iter_markers()):
            item.add_marker(pytest.mark.slow)
