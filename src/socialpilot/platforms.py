"""Summary: Provider endpoint and scope table for supported platforms.

Importance: Keeps every provider quirk in one row instead of scattered branches.
Alternatives: Switch on the platform name inside each OAuth function.
"""

from __future__ import annotations

from dataclasses import dataclass

from socialpilot.errors import UnsupportedPlatformError
from socialpilot.models import Platform


INSTAGRAM_TOKEN_LIFETIME_MS = 60 * 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class ProviderSpec:
    """Summary: OAuth endpoints and request shape for one platform.

    Importance: Lets URL building, exchange, and refresh share one lookup.
    Alternatives: Keep separate dictionaries per concern.
    """

    platform: Platform
    authorize_url: str
    token_url: str
    refresh_url: str
    scope: str
    id_param: str = "client_id"
    basic_auth: bool = False
    refresh_style: str = "standard"
    default_lifetime_ms: int | None = None


PROVIDERS: dict[Platform, ProviderSpec] = {
    Platform.FACEBOOK: ProviderSpec(
        platform=Platform.FACEBOOK,
        authorize_url="https://www.facebook.com/v19.0/dialog/oauth",
        token_url="https://graph.facebook.com/v19.0/oauth/access_token",
        refresh_url="https://graph.facebook.com/v19.0/oauth/access_token",
        scope="pages_manage_posts,pages_read_engagement,publish_to_groups",
    ),
    Platform.TWITTER: ProviderSpec(
        platform=Platform.TWITTER,
        authorize_url="https://twitter.com/i/oauth2/authorize",
        token_url="https://api.twitter.com/2/oauth2/token",
        refresh_url="https://api.twitter.com/2/oauth2/token",
        scope="tweet.read tweet.write users.read offline.access",
        basic_auth=True,
    ),
    Platform.LINKEDIN: ProviderSpec(
        platform=Platform.LINKEDIN,
        authorize_url="https://www.linkedin.com/oauth/v2/authorization",
        token_url="https://www.linkedin.com/oauth/v2/accessToken",
        refresh_url="https://www.linkedin.com/oauth/v2/accessToken",
        scope="r_liteprofile w_member_social",
    ),
    Platform.INSTAGRAM: ProviderSpec(
        platform=Platform.INSTAGRAM,
        authorize_url="https://api.instagram.com/oauth/authorize",
        token_url="https://api.instagram.com/oauth/access_token",
        refresh_url="https://graph.instagram.com/refresh_access_token",
        scope="instagram_basic,instagram_content_publish",
        id_param="app_id",
        refresh_style="instagram",
        default_lifetime_ms=INSTAGRAM_TOKEN_LIFETIME_MS,
    ),
}


def provider_for(platform: Platform | str) -> ProviderSpec:
    """Return the provider row for a platform, rejecting unknown values."""

    if not isinstance(platform, Platform):
        platform = Platform.parse(platform)
    spec = PROVIDERS.get(platform)
    if spec is None:
        raise UnsupportedPlatformError(platform.value)
    return spec
