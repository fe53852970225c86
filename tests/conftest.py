"""Summary: Shared pytest fixtures for SocialPilot tests.

Importance: Provides a recording HTTP fake so no test reaches a real provider.
Alternatives: Patch urllib in every test module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from socialpilot.cipher import resolve_encryption_key
from socialpilot.config import AppConfig
from socialpilot.oauth import HttpResponse


@dataclass
class RecordedCall:
    url: str
    data: dict[str, str]
    headers: dict[str, str]


@dataclass
class FakeHttpClient:
    """Summary: Scripted HttpClient returning queued responses in order.

    Importance: Lets tests assert on the exact provider requests made.
    Alternatives: Run a local stub OAuth server.
    """

    responses: list[HttpResponse | Exception] = field(default_factory=list)
    calls: list[RecordedCall] = field(default_factory=list)

    def queue(self, status: int, body: str) -> None:
        self.responses.append(HttpResponse(status=status, body=body))

    def queue_error(self, error: Exception) -> None:
        self.responses.append(error)

    def post_form(self, url: str, data: dict[str, str], headers: dict[str, str]) -> HttpResponse:
        self.calls.append(RecordedCall(url=url, data=dict(data), headers=dict(headers)))
        if not self.responses:
            raise AssertionError(f"Unexpected provider call to {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_http() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture(autouse=True)
def _fresh_key_cache() -> None:
    resolve_encryption_key.cache_clear()


def build_config(tmp_path: Path, **overrides: object) -> AppConfig:
    """Summary: Build an AppConfig for tests.

    Importance: Ensures tests use isolated storage and a fixed key.
    Alternatives: Load AppConfig from environment variables.
    """

    values: dict[str, object] = dict(
        db_path=str(tmp_path / "test.db"),
        state_backend="cookie",
        state_owner="local",
        encryption_key="test-encryption-key-0123456789abcdef",
        encryption_key_path=str(tmp_path / ".encryption_key"),
        environment="development",
        api_host="127.0.0.1",
        api_port=8000,
        api_key="",
        success_redirect="/",
        error_redirect="/",
        http_timeout_seconds=5.0,
        credentials_ttl_days=30,
        token_ttl_days=30,
    )
    values.update(overrides)
    return AppConfig(**values)  # type: ignore[arg-type]


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return build_config(tmp_path)


@pytest.fixture
def config_factory(tmp_path: Path):
    def _factory(**overrides: object) -> AppConfig:
        return build_config(tmp_path, **overrides)

    return _factory
