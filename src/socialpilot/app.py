"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for the CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from socialpilot.cipher import SecretCipher, resolve_encryption_key
from socialpilot.config import AppConfig
from socialpilot.oauth import HttpClient, UrllibHttpClient
from socialpilot.services import (
    AccessTokenResolver,
    CredentialStore,
    DiagnosticsService,
    PublishService,
    Publisher,
)
from socialpilot.storage.base import PlatformStateStore
from socialpilot.storage.sqlite_store import SqliteStateStore


@dataclass(frozen=True)
class AppContext:
    """Summary: Process-wide dependencies shared by request-scoped services.

    Importance: Resolves the encryption key once and reuses the HTTP client.
    Alternatives: Rebuild dependencies for every request.
    """

    config: AppConfig
    cipher: SecretCipher
    http: HttpClient
    publisher: Publisher | None = None

    def services_for_state(self, state: PlatformStateStore) -> "AppServices":
        """Summary: Build services bound to one persisted-state store.

        Importance: Keeps each request's cookies or owner scope isolated.
        Alternatives: Use a global store singleton.
        """

        credentials = CredentialStore(
            state=state,
            cipher=self.cipher,
            credentials_ttl_days=self.config.credentials_ttl_days,
            token_ttl_days=self.config.token_ttl_days,
        )
        resolver = AccessTokenResolver(store=credentials, http=self.http)
        publishing = (
            PublishService(resolver=resolver, publisher=self.publisher)
            if self.publisher is not None
            else None
        )
        return AppServices(
            credentials=credentials,
            tokens=resolver,
            diagnostics=DiagnosticsService(store=credentials),
            publishing=publishing,
            http=self.http,
        )

    def sqlite_state(self) -> SqliteStateStore:
        store = SqliteStateStore(self.config.db_path, owner=self.config.state_owner)
        store.initialize()
        return store


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of request-scoped services.

    Importance: Simplifies passing dependencies to route handlers.
    Alternatives: Use a dependency injection container.
    """

    credentials: CredentialStore
    tokens: AccessTokenResolver
    diagnostics: DiagnosticsService
    publishing: PublishService | None
    http: HttpClient


def build_context(
    config: AppConfig,
    http: HttpClient | None = None,
    publisher: Publisher | None = None,
) -> AppContext:
    """Summary: Build shared context for request-scoped services.

    Importance: Resolves the key with env > key file > generated priority.
    Alternatives: Construct dependencies separately per request.
    """

    key = resolve_encryption_key(config.encryption_key, config.encryption_key_path)
    return AppContext(
        config=config,
        cipher=SecretCipher(key),
        http=http or UrllibHttpClient(timeout=config.http_timeout_seconds),
        publisher=publisher,
    )
