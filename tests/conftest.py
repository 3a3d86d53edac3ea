import os
from pathlib import Path

import pytest

# Test folder -> marker applied to every test collected under it
_LAYER_MARKERS = {
    "domain": "domain",
    "application": "application",
    "integration": "integration",
    "bdd": "bdd",
}

_CHECKOUT_SETTINGS = ("CHECKOUT_CURRENCY", "CHECKOUT_CURRENCY_EXPONENT", "CHECKOUT_MAX_RESERVATION_ATTEMPTS")


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean environment the checkout domain is configured for",
    )


def pytest_sessionstart(session):
    """Pick the Protean environment and run on default money settings (VND, no minor unit)."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    for name in _CHECKOUT_SETTINGS:
        os.environ.pop(name, None)


def pytest_collection_modifyitems(config, items):
    for item in items:
        layers = set(Path(item.fspath).parts) & _LAYER_MARKERS.keys()
        for layer in layers:
            item.add_marker(getattr(pytest.mark, _LAYER_MARKERS[layer]))

        # API tests go through the full stack
        if "integration" in layers and not item.get_closest_marker("fast"):
            item.add_marker(pytest.mark.slow)
