"""Summary: Error taxonomy for credential and token handling.

Importance: Lets route handlers map each failure class to a user-facing response.
Alternatives: Raise ValueError/RuntimeError and inspect messages.
"""

from __future__ import annotations


# Self-healing failure policies. Each default deletes the offending entry;
# KEEP_ENTRY leaves it in place for inspection.
KEEP_ENTRY = "keep"
TOKEN_DECRYPT_POLICY = "logout"
CREDENTIALS_DECRYPT_POLICY = "clear-and-report"
REFRESH_FAILURE_POLICY = "clear-token"


class SocialPilotError(Exception):
    """Base class for SocialPilot failures."""


class ValidationError(SocialPilotError):
    """Summary: Rejected credential submission.

    Importance: Carries an optional hint shown next to the error message.
    Alternatives: Return validation results as tuples.
    """

    def __init__(self, message: str, tip: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.tip = tip


class UnsupportedPlatformError(SocialPilotError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported platform: {platform}")
        self.platform = platform


class DecryptionError(SocialPilotError):
    """Stored ciphertext could not be read under the current key."""


class ProviderError(SocialPilotError):
    """Summary: Non-success answer from an OAuth provider endpoint.

    Importance: Preserves the provider's own message for display and diagnostics.
    Alternatives: Surface raw HTTP errors from the transport.
    """

    def __init__(
        self,
        platform: str,
        message: str,
        status: int | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.platform = platform
        self.message = message
        self.status = status
        self.transient = transient


class TokenExchangeError(ProviderError):
    pass


class RefreshError(ProviderError):
    pass


class NotConfiguredError(SocialPilotError):
    def __init__(self, platform: str) -> None:
        super().__init__(
            f"No credentials found for {platform}. Please set up your credentials first."
        )
        self.platform = platform


class NotAuthenticatedError(SocialPilotError):
    def __init__(self, platform: str) -> None:
        super().__init__(
            f"Not authenticated with {platform}. Please connect your account first."
        )
        self.platform = platform
