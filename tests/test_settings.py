"""Tests for environment configuration and application wiring."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.app import create_app
from src.config.settings import Settings

_POWERBI_ENV = {
    "POWERBI_TENANT_ID": "tenant",
    "POWERBI_CLIENT_ID": "client",
    "POWERBI_CLIENT_SECRET": "secret",
    "POWERBI_WORKSPACE_ID": "ws",
    "POWERBI_DATASET_ID": "ds",
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        *_POWERBI_ENV,
        "VENDORS",
        "CATEGORIES",
        "LLM_ENABLED",
        "LLM_API_KEY",
        "GITHUB_TOKEN",
        "GITHUB_REPO",
        "REPORT_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_run_local_only(tmp_path: Path) -> None:
    settings = Settings(_env_file=None, REPORT_PATH=str(tmp_path / "report.json"))

    assert not settings.powerbi_configured
    assert not settings.publish_configured
    assert "Caffè Nero" in settings.vendors

    app = create_app(settings)
    assert app.backend is None
    assert app.publisher is None
    assert app.context.vendors == settings.vendors


def test_comma_separated_vocabulary(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VENDORS", "Blue Bottle, Peets ,")
    monkeypatch.setenv("CATEGORIES", "Espresso")

    settings = Settings(_env_file=None)

    assert settings.vendors == ("Blue Bottle", "Peets")
    assert settings.categories == ("Espresso",)


def test_remote_collaborators_are_wired_when_configured(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name, value in _POWERBI_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("GITHUB_TOKEN", "gh")
    monkeypatch.setenv("GITHUB_REPO", "acme/reports")
    monkeypatch.setenv("REPORT_PATH", str(tmp_path / "report.json"))

    app = create_app(Settings(_env_file=None))

    assert app.backend is not None
    assert app.publisher is not None


@pytest.mark.parametrize(
    "env",
    [
        {"LLM_ENABLED": "true"},
        {"VENDORS": "Costa"},
        {"GITHUB_REPO": "not-a-repo"},
    ],
)
def test_invalid_configuration_is_rejected(monkeypatch: pytest.MonkeyPatch, env: dict[str, str]) -> None:
    for name, value in env.items():
        monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
