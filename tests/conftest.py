import pytest

import osu_lb_tracker.sources.http as http_mod


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(http_mod, "RETRY_DELAY", 0)
