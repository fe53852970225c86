"""Summary: Tests for credential validation and token normalization.

Importance: Bad credentials must be rejected before they are stored.
Alternatives: Validate credentials only at the provider.
"""

from __future__ import annotations

import pytest

from socialpilot.errors import UnsupportedPlatformError, ValidationError
from socialpilot.models import Platform, PlatformCredentials, TokenData


def _submission(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "client_id": "123",
        "client_secret": "abc",
        "redirect_uri": "https://x.test/cb",
    }
    payload.update(overrides)
    return payload


def test_submission_is_trimmed() -> None:
    credentials = PlatformCredentials.from_submission(
        Platform.FACEBOOK,
        _submission(client_id="  123 ", client_secret="\tabc\n", redirect_uri=" https://x.test/cb "),
    )
    assert credentials.client_id == "123"
    assert credentials.client_secret == "abc"
    assert credentials.redirect_uri == "https://x.test/cb"
    assert credentials.platform is Platform.FACEBOOK


@pytest.mark.parametrize("field", ["client_id", "client_secret", "redirect_uri"])
def test_missing_or_blank_fields_are_rejected(field: str) -> None:
    with pytest.raises(ValidationError):
        PlatformCredentials.from_submission(Platform.TWITTER, _submission(**{field: "   "}))
    payload = _submission()
    payload.pop(field)
    with pytest.raises(ValidationError):
        PlatformCredentials.from_submission(Platform.TWITTER, payload)


@pytest.mark.parametrize(
    "redirect_uri",
    ["not a url", "ftp://x.test/cb", "/relative/callback", "https://", "https://x.test/c b"],
)
def test_redirect_uri_must_be_absolute_http_url(redirect_uri: str) -> None:
    with pytest.raises(ValidationError):
        PlatformCredentials.from_submission(Platform.LINKEDIN, _submission(redirect_uri=redirect_uri))


def test_instagram_requires_numeric_app_id() -> None:
    with pytest.raises(ValidationError) as excinfo:
        PlatformCredentials.from_submission(Platform.INSTAGRAM, _submission(client_id="abc123"))
    assert excinfo.value.tip
    credentials = PlatformCredentials.from_submission(
        Platform.INSTAGRAM, _submission(client_id="987654321")
    )
    assert credentials.client_id == "987654321"


def test_numeric_client_id_is_accepted_as_text() -> None:
    credentials = PlatformCredentials.from_submission(
        Platform.INSTAGRAM, _submission(client_id=987654321)
    )
    assert credentials.client_id == "987654321"
    with pytest.raises(ValidationError):
        PlatformCredentials.from_submission(Platform.INSTAGRAM, _submission(client_id=True))


def test_non_instagram_accepts_alphanumeric_client_id() -> None:
    credentials = PlatformCredentials.from_submission(Platform.TWITTER, _submission(client_id="abc123"))
    assert credentials.client_id == "abc123"


def test_credentials_json_roundtrip() -> None:
    credentials = PlatformCredentials.from_submission(Platform.LINKEDIN, _submission())
    assert PlatformCredentials.from_json(credentials.to_json()) == credentials


def test_platform_parse_rejects_unknown() -> None:
    assert Platform.parse("twitter") is Platform.TWITTER
    with pytest.raises(UnsupportedPlatformError):
        Platform.parse("myspace")


def test_token_from_provider_computes_expiry_from_expires_in() -> None:
    token = TokenData.from_provider(
        {"access_token": "a", "expires_in": 3600, "token_type": "bearer"}, now=1_000_000
    )
    assert token.expires_at == 1_000_000 + 3_600_000
    assert token.token_type == "bearer"
    assert token.refresh_token is None


def test_token_from_provider_keeps_absolute_expiry() -> None:
    token = TokenData.from_provider(
        {"access_token": "a", "expires_at": 42, "expires_in": 3600}, now=1_000_000
    )
    assert token.expires_at == 42


def test_token_without_expiry_never_expires() -> None:
    token = TokenData.from_provider({"access_token": "a"}, now=1_000_000)
    assert token.expires_at is None
    assert not token.is_expired(10**15)


def test_token_default_lifetime_overrides_expires_in() -> None:
    token = TokenData.from_provider({"access_token": "a"}, now=100, default_lifetime_ms=50)
    assert token.expires_at == 150
    token = TokenData.from_provider(
        {"access_token": "a", "expires_in": 3600}, now=100, default_lifetime_ms=50
    )
    assert token.expires_at == 150
    token = TokenData.from_provider(
        {"access_token": "a", "expires_at": 42}, now=100, default_lifetime_ms=50
    )
    assert token.expires_at == 42


def test_token_from_provider_requires_access_token() -> None:
    with pytest.raises(ValueError):
        TokenData.from_provider({"token_type": "bearer"}, now=0)


def test_token_expiry_check() -> None:
    token = TokenData(access_token="a", expires_at=1000)
    assert token.is_expired(1001)
    assert not token.is_expired(1000)


def test_token_json_omits_empty_fields() -> None:
    token = TokenData(access_token="a", refresh_token="r", expires_at=5)
    assert "token_type" not in token.to_json()
    assert TokenData.from_json(token.to_json()) == token
