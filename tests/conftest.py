# tests/conftest.py
import os
import logging
import pytest

from messenger.core import log, metrics
from messenger.core.default import reset_default

@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging_and_metrics():
    # reads LOG_LEVEL / LOG_JSON / .env
    log.setup()

    interval = float(os.getenv("METRICS_INTERVAL_TEST", "1.0"))
    json_mode = (os.getenv("LOG_JSON", "0") == "1")
    metrics.start_exporter(interval_sec=interval, json_mode=json_mode,
                           logger=logging.getLogger("metrics"))
    yield
    metrics.stop_exporter()


@pytest.fixture(autouse=True)
def _fresh_state():
    metrics.reset()
    reset_default()
    yield


@pytest.fixture
def calls():
    """Shared call log plus a factory for recording handlers."""
    log_ = []

    def make(tag):
        def handler(payload):
            log_.append((tag, payload))
        handler.__name__ = f"handler_{tag}"
        return handler

    return log_, make
