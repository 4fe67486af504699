"""Shared fixtures: every test signs tokens with a throwaway JWT secret."""

import pytest

from swasth.core import config


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch) -> str:
    monkeypatch.setattr(config, "JWT_SECRET", "test-secret")
    return "test-secret"
