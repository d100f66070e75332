"""Global test fixtures: reset logging and colour state between tests."""
import logging

import pytest

from chain.render import C

_COLOR_DEFAULTS = {
    attr: getattr(C, attr)
    for attr in dir(C)
    if attr.isupper() and not attr.startswith("_")
}


@pytest.fixture(autouse=True)
def reset_global_state():
    """CLI entry points reconfigure loggers and disable colours; undo that."""
    yield
    for name in ("chain", "gamma", "shared", "cockpit"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
    for attr, value in _COLOR_DEFAULTS.items():
        setattr(C, attr, value)


@pytest.fixture
def no_sleep(monkeypatch):
    """Make retry backoff and scan delays instant."""
    sleeps = []
    monkeypatch.setattr("time.sleep", lambda seconds: sleeps.append(seconds))
    return sleeps
