"""Shared fixtures: isolate tests from the developer's env and config file."""

from __future__ import annotations

import os

import pytest

from semkit import config as semkit_config


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """No SEMKIT_* env vars, no ~/.semkit/config.yaml, fresh singleton."""
    for key in list(os.environ):
        if key.startswith("SEMKIT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(semkit_config, "_DEFAULT_PATH", tmp_path / "no-config.yaml")
    semkit_config.reset_config()
    yield
    semkit_config.reset_config()
