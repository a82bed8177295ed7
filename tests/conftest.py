from __future__ import annotations

import os

import pytest

_PREFIXES = ("BSKY_", "LISTMIRROR_")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Keep a developer's ``.env`` or shell settings out of every test."""

    for name in list(os.environ):
        if name.startswith(_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
