"""Summary: Keyed persisted-state contract shared by storage backends.

Importance: Lets services run unchanged over cookies or a server-side database.
Alternatives: Bind services directly to the request cookie jar.
"""

from __future__ import annotations

from typing import Iterable, Protocol


SLOT_CREDENTIALS = "credentials"
SLOT_TOKEN = "token"
SLOT_AUTH_DEBUG = "auth_debug"
SLOT_AUTH_ERROR = "auth_error"
SLOT_CALLBACK_ERROR = "callback_error"
SLOT_DECRYPT_ERROR = "decrypt_error"
SLOT_AUTH_SUCCESS = "auth_success"

DIAGNOSTIC_SLOTS = (
    SLOT_AUTH_DEBUG,
    SLOT_AUTH_ERROR,
    SLOT_CALLBACK_ERROR,
    SLOT_DECRYPT_ERROR,
    SLOT_AUTH_SUCCESS,
)
ALL_SLOTS = (SLOT_CREDENTIALS, SLOT_TOKEN) + DIAGNOSTIC_SLOTS


def state_key(platform: str, slot: str) -> str:
    return f"{platform}_{slot}"


class PlatformStateStore(Protocol):
    """Summary: Per-entry key-value store with TTL and visibility flags.

    Importance: Owns all persisted credential, token, and diagnostic entries.
    Alternatives: Use a general-purpose cache client.
    """

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str, max_age_seconds: int, http_only: bool = True) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def keys(self) -> Iterable[str]:
        ...
