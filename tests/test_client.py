from __future__ import annotations

import os

import pytest

import settings
from client import api_credentials, build_client, session_path
from core.errors import CargoscopeError, ConfigurationError


def test_credentials_are_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", " 12345 ")
    monkeypatch.setenv("API_HASH", "0123abcd")

    assert api_credentials() == (12345, "0123abcd")


def test_missing_api_hash_is_a_configuration_error(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "12345")
    monkeypatch.delenv("API_HASH", raising=False)

    with pytest.raises(ConfigurationError, match="API_HASH"):
        build_client()


def test_non_numeric_api_id_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "my-app")
    monkeypatch.setenv("API_HASH", "0123abcd")

    with pytest.raises(CargoscopeError, match="numeric"):
        api_credentials()


def test_session_lives_in_project_root(monkeypatch) -> None:
    monkeypatch.delenv("SESSION_NAME", raising=False)

    assert session_path() == os.path.join(settings.PROJECT_ROOT, "cargoscope")
    assert session_path("publisher") == os.path.join(settings.PROJECT_ROOT, "publisher")


def test_absolute_session_name_is_kept(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SESSION_NAME", str(tmp_path / "bot-account"))

    assert session_path() == str(tmp_path / "bot-account")
