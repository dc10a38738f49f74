from unittest.mock import patch

import pytest

from config import settings
from main import app
from routers import rate_limit


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
    app.state.disable_rate_limits = previous


@pytest.fixture(autouse=True)
def media_root(tmp_path):
    """Mirror files into a per-test directory instead of the working tree."""
    root = tmp_path / "media"
    with patch.object(settings, "MEDIA_ROOT", str(root)):
        yield root
