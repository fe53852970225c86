"""Summary: Domain model dataclasses for SocialPilot.

Importance: Defines platforms, developer credentials, and tokens shared across services.
Alternatives: Use Pydantic models or raw dictionaries directly.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from socialpilot.errors import UnsupportedPlatformError, ValidationError


NUMERIC_APP_ID = re.compile(r"^\d+$")


def now_ms() -> int:
    """Return the current time as epoch milliseconds."""

    return int(time.time() * 1000)


class Platform(str, Enum):
    """Summary: Supported social platforms.

    Importance: Closes the set of providers so dispatch goes through one table.
    Alternatives: Pass bare strings and branch on them at each call site.
    """

    FACEBOOK = "facebook"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"

    @classmethod
    def parse(cls, value: str) -> "Platform":
        try:
            return cls(value)
        except ValueError as exc:
            raise UnsupportedPlatformError(value) from exc


@dataclass(frozen=True)
class PlatformCredentials:
    """Summary: Developer app credentials for one platform.

    Importance: Drives authorization URLs, code exchange, and refresh.
    Alternatives: Read app credentials from environment variables only.
    """

    platform: Platform
    client_id: str
    client_secret: str
    redirect_uri: str

    @staticmethod
    def from_submission(platform: Platform, payload: dict[str, Any]) -> "PlatformCredentials":
        """Summary: Validate and normalize a user credential submission.

        Importance: Rejects unusable credentials before anything is persisted.
        Alternatives: Accept any input and let the provider reject it later.
        """

        fields = {}
        for name in ("client_id", "client_secret", "redirect_uri"):
            value = payload.get(name)
            if isinstance(value, int) and not isinstance(value, bool):
                value = str(value)
            fields[name] = value.strip() if isinstance(value, str) else ""
        if not all(fields.values()):
            raise ValidationError("Missing required credentials")
        if not _is_http_url(fields["redirect_uri"]):
            raise ValidationError(
                "Invalid redirect URI format. Please provide a valid URL with no spaces "
                "or special characters."
            )
        if platform is Platform.INSTAGRAM and not NUMERIC_APP_ID.match(fields["client_id"]):
            raise ValidationError(
                "Instagram App ID should be numeric. Make sure you're using the App ID "
                "from Meta for Developers, not the app name.",
                tip="Check your Meta for Developers dashboard under Settings > Basic "
                "to find your App ID.",
            )
        return PlatformCredentials(platform=platform, **fields)

    def to_json(self) -> str:
        payload = asdict(self)
        payload["platform"] = self.platform.value
        return json.dumps(payload)

    @staticmethod
    def from_json(raw: str) -> "PlatformCredentials":
        payload = json.loads(raw)
        return PlatformCredentials(
            platform=Platform.parse(payload["platform"]),
            client_id=payload["client_id"],
            client_secret=payload["client_secret"],
            redirect_uri=payload["redirect_uri"],
        )


@dataclass(frozen=True)
class TokenData:
    """Summary: Normalized OAuth token with absolute expiry.

    Importance: Gives the resolver one shape to check regardless of provider.
    Alternatives: Store the raw provider response without normalization.
    """

    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    token_type: str | None = None

    def is_expired(self, now: int) -> bool:
        return self.expires_at is not None and self.expires_at < now

    @staticmethod
    def from_provider(
        payload: dict[str, Any],
        now: int,
        default_lifetime_ms: int | None = None,
    ) -> "TokenData":
        """Summary: Build TokenData from a provider token response.

        Importance: Normalizes expiry across providers that report seconds or absolutes.
        A default lifetime replaces expires_in; Instagram reports the short-lived
        lifetime there while the stored token is long-lived.
        Alternatives: Use provider-specific token response classes.
        """

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("Token response did not include an access_token")
        expires_at = _as_int(payload.get("expires_at"))
        if expires_at is None and default_lifetime_ms is not None:
            expires_at = now + default_lifetime_ms
        elif expires_at is None:
            expires_in = _as_int(payload.get("expires_in"))
            if expires_in:
                expires_at = now + expires_in * 1000
        refresh_token = payload.get("refresh_token")
        token_type = payload.get("token_type")
        return TokenData(
            access_token=access_token,
            refresh_token=refresh_token if isinstance(refresh_token, str) and refresh_token else None,
            expires_at=expires_at,
            token_type=token_type if isinstance(token_type, str) else None,
        )

    def to_json(self) -> str:
        return json.dumps({key: value for key, value in asdict(self).items() if value is not None})

    @staticmethod
    def from_json(raw: str) -> "TokenData":
        payload = json.loads(raw)
        return TokenData(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=_as_int(payload.get("expires_at")),
            token_type=payload.get("token_type"),
        )


def _is_http_url(value: str) -> bool:
    if any(character.isspace() for character in value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _as_int(value: Any) -> int | None:
    # bool is an int subclass; providers never mean it as a duration
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
