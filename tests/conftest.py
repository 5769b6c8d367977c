"""Shared fixtures."""

from __future__ import annotations

import pytest

from gridcalc.logging.events import set_project_dir


@pytest.fixture(autouse=True)
def _no_event_sink():
    """Keep the module-level event sink from leaking between tests."""
    set_project_dir(None)
    yield
    set_project_dir(None)
