"""Summary: Tests for the SocialPilot CLI.

Importance: Confirms operators can inspect and reset server-side state.
Alternatives: Exercise the CLI manually.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from socialpilot.app import build_context
from socialpilot.cli import run_cli
from socialpilot.config import AppConfig
from socialpilot.models import Platform, PlatformCredentials, TokenData


@pytest.fixture
def cli_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    defaults = {
        "db_path": "state.db",
        "state_backend": "sqlite",
        "state_owner": "local",
        "encryption_key": "cli-test-key-0123456789abcdef0123",
        "encryption_key_path": ".encryption_key",
        "environment": "development",
        "api_host": "127.0.0.1",
        "api_port": "8000",
        "api_key": "",
        "success_redirect": "/",
        "error_redirect": "/",
        "http_timeout_seconds": "10",
        "credentials_ttl_days": "30",
        "token_ttl_days": "30",
    }
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "defaults.json").write_text(json.dumps(defaults), encoding="utf-8")
    for name in ("ENCRYPTION_KEY", "SOCIALPILOT_DB_PATH", "SOCIALPILOT_STATE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _seed_facebook() -> None:
    context = build_context(AppConfig.from_env())
    store = context.services_for_state(context.sqlite_state()).credentials
    store.save_credentials(
        Platform.FACEBOOK,
        PlatformCredentials(
            platform=Platform.FACEBOOK,
            client_id="123",
            client_secret="abc",
            redirect_uri="https://x.test/cb",
        ),
    )
    store.save_token(Platform.FACEBOOK, TokenData(access_token="token", expires_at=None))


def test_generate_key_prints_hex(capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["generate-key"]) == 0
    key = capsys.readouterr().out.strip()
    assert len(key) == 64
    int(key, 16)


def test_auth_url_requires_credentials(
    cli_workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert run_cli(["auth-url", "twitter"]) == 1
    assert "No credentials stored for twitter" in capsys.readouterr().out


def test_auth_url_uses_stored_credentials(
    cli_workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _seed_facebook()
    assert run_cli(["auth-url", "facebook"]) == 0
    assert "state=facebook" in capsys.readouterr().out


def test_status_and_reset(cli_workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed_facebook()
    assert run_cli(["status", "facebook"]) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["has_credentials"] is True
    assert status["authenticated"] is True
    assert "client_secret" not in json.dumps(status)

    assert run_cli(["reset", "facebook"]) == 0
    capsys.readouterr()
    assert run_cli(["status", "facebook"]) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["has_credentials"] is False
    assert status["authenticated"] is False


def test_unknown_platform_is_rejected(cli_workspace: Path) -> None:
    with pytest.raises(SystemExit):
        run_cli(["status", "myspace"])
