"""Root conftest: route structlog through stdlib logging for tests."""

import pytest
import structlog

from shared.logging import configure_structlog

# Routing through stdlib logging lets caplog see structlog events.
configure_structlog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Prevent context leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
