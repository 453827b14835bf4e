from __future__ import annotations

import pytest

from experiment_tracker import main as entrypoint
from experiment_tracker.config.settings import settings


def test_main_serves_app_on_configured_address(monkeypatch: pytest.MonkeyPatch):
    calls = []
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(settings, "API_PORT", 9100)

    entrypoint.main()

    assert len(calls) == 1
    app, kwargs = calls[0]
    assert app is entrypoint.app
    assert kwargs["port"] == 9100
    assert kwargs["host"] == settings.API_HOST
