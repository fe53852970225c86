"""Summary: Core services for credential storage, token resolution, and diagnostics.

Importance: Encapsulates the credential/token lifecycle for reuse by API and CLI layers.
Alternatives: Implement logic directly in route handlers.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from socialpilot.cipher import SecretCipher
from socialpilot.errors import (
    CREDENTIALS_DECRYPT_POLICY,
    KEEP_ENTRY,
    REFRESH_FAILURE_POLICY,
    TOKEN_DECRYPT_POLICY,
    DecryptionError,
    NotAuthenticatedError,
    NotConfiguredError,
    ProviderError,
)
from socialpilot.models import NUMERIC_APP_ID, Platform, PlatformCredentials, TokenData, now_ms
from socialpilot.oauth import HttpClient, refresh_access_token
from socialpilot.storage.base import (
    ALL_SLOTS,
    DIAGNOSTIC_SLOTS,
    SLOT_AUTH_SUCCESS,
    SLOT_CREDENTIALS,
    SLOT_DECRYPT_ERROR,
    SLOT_TOKEN,
    PlatformStateStore,
    state_key,
)


logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
DIAGNOSTIC_TTL_SECONDS = 30 * 60
AUTH_SUCCESS_TTL_SECONDS = 5 * 60


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CredentialStore:
    """Summary: Encrypted per-platform credential and token persistence.

    Importance: Single owner of every persisted entry, including diagnostics.
    Alternatives: Let each route read and write cookies itself.
    """

    state: PlatformStateStore
    cipher: SecretCipher
    credentials_ttl_days: int = 30
    token_ttl_days: int = 30
    clock: Callable[[], int] = now_ms
    token_decrypt_policy: str = TOKEN_DECRYPT_POLICY
    credentials_decrypt_policy: str = CREDENTIALS_DECRYPT_POLICY

    def has_credentials(self, platform: Platform) -> bool:
        return self.state.get(state_key(platform.value, SLOT_CREDENTIALS)) is not None

    def save_credentials(self, platform: Platform, credentials: PlatformCredentials) -> None:
        """Summary: Encrypt and persist credentials for a platform.

        Importance: Replaces any previous credentials for that platform.
        Alternatives: Keep credentials in process memory.
        """

        encrypted = self.cipher.encrypt(credentials.to_json())
        self.state.set(
            state_key(platform.value, SLOT_CREDENTIALS),
            encrypted,
            self.credentials_ttl_days * DAY_SECONDS,
        )
        logger.info("Stored credentials for %s.", platform.value)

    def load_credentials(self, platform: Platform) -> PlatformCredentials | None:
        """Summary: Load and decrypt credentials for a platform.

        Importance: Unreadable credentials are deleted and reported, never defaulted.
        Alternatives: Return None for both absent and corrupted entries.
        """

        key = state_key(platform.value, SLOT_CREDENTIALS)
        raw = self.state.get(key)
        if raw is None:
            return None
        try:
            return PlatformCredentials.from_json(self.cipher.decrypt(raw))
        except (DecryptionError, ValueError, KeyError) as exc:
            logger.error("Error decrypting %s credentials: %s", platform.value, exc)
            if self.credentials_decrypt_policy != KEEP_ENTRY:
                self.state.delete(key)
            self.record_diagnostic(
                platform,
                SLOT_DECRYPT_ERROR,
                {"message": str(exc), "cookie_length": len(raw)},
            )
            if isinstance(exc, DecryptionError):
                raise
            raise DecryptionError(f"Stored credentials are unreadable: {exc}") from exc

    def save_token(self, platform: Platform, token: TokenData) -> None:
        """Summary: Encrypt and persist a token for a platform.

        Importance: Entry lifetime follows token expiry unless a refresh token must survive.
        Alternatives: Use one fixed lifetime for every token.
        """

        default_ttl = self.token_ttl_days * DAY_SECONDS
        ttl = default_ttl
        if token.expires_at is not None:
            ttl = (token.expires_at - self.clock()) // 1000
            if token.refresh_token:
                ttl = max(ttl, default_ttl)
        self.state.set(
            state_key(platform.value, SLOT_TOKEN), self.cipher.encrypt(token.to_json()), ttl
        )
        logger.info("Stored token for %s.", platform.value)

    def load_token(self, platform: Platform) -> TokenData | None:
        """Summary: Load and decrypt the stored token for a platform.

        Importance: An unreadable token is equivalent to being logged out.
        Alternatives: Raise and force each caller to handle decryption errors.
        """

        key = state_key(platform.value, SLOT_TOKEN)
        raw = self.state.get(key)
        if raw is None:
            return None
        try:
            return TokenData.from_json(self.cipher.decrypt(raw))
        except (DecryptionError, ValueError, KeyError) as exc:
            logger.error("Error decrypting token for %s: %s", platform.value, exc)
            if self.token_decrypt_policy != KEEP_ENTRY:
                self.state.delete(key)
            return None

    def token_is_readable(self, platform: Platform) -> bool | None:
        """Return None when no token is stored, else whether it decrypts."""

        raw = self.state.get(state_key(platform.value, SLOT_TOKEN))
        if raw is None:
            return None
        try:
            TokenData.from_json(self.cipher.decrypt(raw))
        except (DecryptionError, ValueError, KeyError):
            return False
        return True

    def clear_token(self, platform: Platform) -> None:
        self.state.delete(state_key(platform.value, SLOT_TOKEN))

    def clear_all(self, platform: Platform) -> None:
        for slot in ALL_SLOTS:
            self.state.delete(state_key(platform.value, slot))
        logger.info("Cleared all stored state for %s.", platform.value)

    def record_diagnostic(
        self,
        platform: Platform,
        slot: str,
        payload: dict[str, Any],
        max_age_seconds: int = DIAGNOSTIC_TTL_SECONDS,
    ) -> None:
        """Summary: Store a timestamped plaintext diagnostic record.

        Importance: Gives operators context for failed logins without exposing secrets.
        Alternatives: Rely on server logs only.
        """

        if slot not in DIAGNOSTIC_SLOTS:
            raise ValueError(f"Unknown diagnostic slot: {slot}")
        record = {"timestamp": utc_timestamp(), **payload}
        self.state.set(state_key(platform.value, slot), json.dumps(record), max_age_seconds)

    def read_diagnostic(self, platform: Platform, slot: str) -> dict[str, Any] | None:
        raw = self.state.get(state_key(platform.value, slot))
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            return {"error": "Failed to parse diagnostic data"}
        return value if isinstance(value, dict) else {"value": value}

    def mark_auth_success(self, platform: Platform) -> None:
        self.state.set(
            state_key(platform.value, SLOT_AUTH_SUCCESS),
            "true",
            AUTH_SUCCESS_TTL_SECONDS,
            http_only=False,
        )

    def remaining_keys(self, platform: Platform) -> list[str]:
        prefix = f"{platform.value}_"
        return [key for key in self.state.keys() if key.startswith(prefix)]


@dataclass(frozen=True)
class TokenStatus:
    authenticated: bool
    reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"authenticated": self.authenticated}
        if self.reason:
            payload["reason"] = self.reason
        return payload


@dataclass(frozen=True)
class AccessTokenResolver:
    """Summary: Returns a usable access token, refreshing expired ones.

    Importance: The only path publishing code uses to obtain provider tokens.
    Alternatives: Let publishers read and refresh tokens themselves.
    """

    store: CredentialStore
    http: HttpClient
    clock: Callable[[], int] = now_ms
    refresh_failure_policy: str = REFRESH_FAILURE_POLICY

    def get_access_token(self, platform: Platform) -> str | None:
        """Summary: Return a valid access token or None when not authenticated.

        Importance: Refreshes at most once per call and clears tokens it cannot refresh.
        Alternatives: Always re-run OAuth flows after expiry.
        """

        if not self.store.has_credentials(platform):
            raise NotConfiguredError(platform.value)
        token = self.store.load_token(platform)
        if token is None:
            return None
        if not token.is_expired(self.clock()):
            return token.access_token
        if not token.refresh_token:
            logger.info("Token for %s expired without a refresh token.", platform.value)
            return None
        try:
            credentials = self.store.load_credentials(platform)
        except DecryptionError:
            return None
        if credentials is None:
            raise NotConfiguredError(platform.value)
        try:
            refreshed = refresh_access_token(
                platform, token.refresh_token, credentials, self.http, self.clock
            )
        except ProviderError as exc:
            logger.warning("Error refreshing token for %s: %s", platform.value, exc)
            if self.refresh_failure_policy != KEEP_ENTRY:
                self.store.clear_token(platform)
            return None
        self.store.save_token(platform, refreshed)
        return refreshed.access_token

    def require_access_token(self, platform: Platform) -> str:
        token = self.get_access_token(platform)
        if token is None:
            raise NotAuthenticatedError(platform.value)
        return token

    def token_status(self, platform: Platform) -> TokenStatus:
        """Summary: Report whether a stored token is usable without refreshing it.

        Importance: Status checks must stay read-only and free of network calls.
        Alternatives: Call get_access_token and treat refresh as a side effect.
        """

        readable = self.store.token_is_readable(platform)
        if readable is None:
            return TokenStatus(authenticated=False)
        if not readable:
            return TokenStatus(authenticated=False, reason="invalid")
        token = self.store.load_token(platform)
        if token is None:
            return TokenStatus(authenticated=False, reason="invalid")
        if token.is_expired(self.clock()):
            return TokenStatus(authenticated=False, reason="expired")
        return TokenStatus(authenticated=True)


@dataclass(frozen=True)
class DiagnosticsService:
    """Summary: Troubleshooting view and forced reset of platform state.

    Importance: Lets operators see why a connection fails and start over cleanly.
    Alternatives: Ask users to clear their browser cookies.
    """

    store: CredentialStore

    def reset(self, platform: Platform) -> dict[str, Any]:
        self.store.clear_all(platform)
        return {
            "success": True,
            "message": f"All {platform.value} connection data has been reset",
            "timestamp": utc_timestamp(),
        }

    def snapshot(self, platform: Platform) -> dict[str, Any]:
        """Summary: Collect non-secret facts about a platform connection.

        Importance: Surfaces decrypt errors and malformed app IDs at a glance.
        Alternatives: Inspect raw cookies in the browser.
        """

        snapshot: dict[str, Any] = {
            "timestamp": utc_timestamp(),
            "platform": platform.value,
            "has_credentials": self.store.has_credentials(platform),
            "has_token": self.store.token_is_readable(platform) is not None,
        }
        for slot in DIAGNOSTIC_SLOTS:
            if slot == SLOT_AUTH_SUCCESS:
                continue
            snapshot[slot] = self.store.read_diagnostic(platform, slot)
        snapshot["app_info"] = self._app_info(platform) if snapshot["has_credentials"] else None
        return snapshot

    def _app_info(self, platform: Platform) -> dict[str, Any]:
        try:
            credentials = self.store.load_credentials(platform)
        except DecryptionError:
            return {"error": "Failed to decode credentials"}
        if credentials is None:
            return {"error": "Failed to decode credentials"}
        return {
            "client_id_length": len(credentials.client_id),
            "client_id_numeric": bool(NUMERIC_APP_ID.match(credentials.client_id)),
            "has_secret": bool(credentials.client_secret),
            "redirect_uri": credentials.redirect_uri,
            "redirect_uri_valid": credentials.redirect_uri.startswith("http"),
        }


class Publisher(Protocol):
    def publish(
        self, platform: Platform, access_token: str, text: str, image_url: str | None
    ) -> str:
        ...


@dataclass(frozen=True)
class PublishService:
    """Summary: Publishes content using tokens obtained from the resolver.

    Importance: Keeps token handling out of platform-specific publishing code.
    Alternatives: Pass raw tokens from the API layer to publishers.
    """

    resolver: AccessTokenResolver
    publisher: Publisher

    def publish(self, platform: Platform, text: str, image_url: str | None) -> str:
        if not text:
            raise ValueError("Text content is required")
        if platform is Platform.INSTAGRAM and not image_url:
            raise ValueError("An image is required for Instagram posts")
        access_token = self.resolver.require_access_token(platform)
        post_id = self.publisher.publish(platform, access_token, text, image_url)
        logger.info("Published to %s as %s.", platform.value, post_id)
        return post_id
