"""Summary: OAuth helper utilities for social platform integrations.

Importance: Builds authorization URLs and performs code exchange and refresh per provider.
Alternatives: Use provider SDKs or requests-oauthlib for OAuth flows.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol
import urllib.error
import urllib.parse
import urllib.request

from socialpilot.errors import ProviderError, RefreshError, TokenExchangeError
from socialpilot.models import Platform, PlatformCredentials, TokenData, now_ms
from socialpilot.platforms import ProviderSpec, provider_for


logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class HttpResponse:
    """Summary: Minimal HTTP response returned by an HttpClient.

    Importance: Decouples the OAuth engines from a specific transport.
    Alternatives: Pass urllib response objects around directly.
    """

    status: int
    body: str

    def json(self) -> Any:
        return json.loads(self.body)


class HttpClient(Protocol):
    def post_form(self, url: str, data: dict[str, str], headers: dict[str, str]) -> HttpResponse:
        ...


class UrllibHttpClient:
    """Summary: Form-encoded POST client built on urllib.

    Importance: Avoids new dependencies while supporting OAuth exchanges.
    Alternatives: Use requests or httpx.
    """

    def __init__(self, timeout: float = 10) -> None:
        self._timeout = timeout

    def post_form(self, url: str, data: dict[str, str], headers: dict[str, str]) -> HttpResponse:
        """Summary: Send a form-encoded POST request.

        Importance: Returns error statuses as responses so callers can read provider messages.
        Alternatives: Raise on every non-2xx status.
        """

        request = urllib.request.Request(
            url,
            data=urllib.parse.urlencode(data).encode("utf-8"),
            headers={"Content-Type": FORM_CONTENT_TYPE, "Accept": "application/json", **headers},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return HttpResponse(status=response.status, body=response.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            return HttpResponse(status=exc.code, body=exc.read().decode("utf-8", errors="replace"))


def build_auth_url(platform: Platform, credentials: PlatformCredentials) -> str:
    """Summary: Build the provider authorization URL for a platform.

    Importance: Sends the user to the provider login page with the right scopes.
    Alternatives: Hardcode one URL template per provider.
    """

    spec = provider_for(platform)
    params = {
        spec.id_param: credentials.client_id,
        "redirect_uri": credentials.redirect_uri.strip(),
        "response_type": "code",
        "state": spec.platform.value,
        "scope": spec.scope,
    }
    return spec.authorize_url + "?" + urllib.parse.urlencode(params)


def exchange_code(
    platform: Platform,
    code: str,
    credentials: PlatformCredentials,
    http: HttpClient,
    clock: Callable[[], int] = now_ms,
) -> TokenData:
    """Summary: Exchange an authorization code for a token.

    Importance: Completes the authorization-code flow for every provider.
    Alternatives: Use provider SDKs or external auth services.
    """

    spec = provider_for(platform)
    payload = _exchange_payload(spec, code, credentials)
    logger.info("Exchanging authorization code for %s token.", spec.platform.value)
    data = _post_token_request(
        spec, spec.token_url, payload, _auth_headers(spec, credentials), http, TokenExchangeError
    )
    return _normalize(spec, data, clock(), TokenExchangeError, default_lifetime=True)


def refresh_access_token(
    platform: Platform,
    refresh_token: str,
    credentials: PlatformCredentials,
    http: HttpClient,
    clock: Callable[[], int] = now_ms,
) -> TokenData:
    """Summary: Refresh an access token with a stored refresh token.

    Importance: Keeps publishing working without re-prompting the user.
    Alternatives: Require a new login after every expiry.
    """

    spec = provider_for(platform)
    payload = _refresh_payload(spec, refresh_token, credentials)
    logger.info("Refreshing %s token.", spec.platform.value)
    data = _post_token_request(
        spec, spec.refresh_url, payload, _auth_headers(spec, credentials), http, RefreshError
    )
    token = _normalize(spec, data, clock(), RefreshError, default_lifetime=False)
    if token.refresh_token is None:
        token = TokenData(
            access_token=token.access_token,
            refresh_token=refresh_token,
            expires_at=token.expires_at,
            token_type=token.token_type,
        )
    return token


def _exchange_payload(
    spec: ProviderSpec, code: str, credentials: PlatformCredentials
) -> dict[str, str]:
    """Summary: Build token request parameters for code exchange.

    Importance: Instagram expects the same fields in a different order on its own endpoint.
    Alternatives: Assemble payloads inline inside the exchange function.
    """

    if spec.platform is Platform.INSTAGRAM:
        return {
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "grant_type": "authorization_code",
            "redirect_uri": credentials.redirect_uri,
            "code": code,
        }
    return {
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
        "code": code,
        "redirect_uri": credentials.redirect_uri,
        "grant_type": "authorization_code",
    }


def _refresh_payload(
    spec: ProviderSpec, refresh_token: str, credentials: PlatformCredentials
) -> dict[str, str]:
    """Summary: Build token request parameters for refresh.

    Importance: Instagram refreshes the long-lived token itself and takes no client secret.
    Alternatives: Keep one payload shape and let Instagram reject it.
    """

    if spec.refresh_style == "instagram":
        return {
            "client_id": credentials.client_id,
            "grant_type": "ig_refresh_token",
            "access_token": refresh_token,
        }
    return {
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }


def _auth_headers(spec: ProviderSpec, credentials: PlatformCredentials) -> dict[str, str]:
    if not spec.basic_auth:
        return {}
    pair = f"{credentials.client_id}:{credentials.client_secret}".encode("utf-8")
    return {"Authorization": "Basic " + base64.b64encode(pair).decode("ascii")}


def _post_token_request(
    spec: ProviderSpec,
    url: str,
    payload: dict[str, str],
    headers: dict[str, str],
    http: HttpClient,
    error_cls: type[ProviderError],
) -> dict[str, Any]:
    """Summary: POST a token request and return the parsed JSON object.

    Importance: Maps transport failures and provider rejections to typed errors.
    Alternatives: Let urllib and json exceptions propagate.
    """

    platform = spec.platform.value
    try:
        response = http.post_form(url, payload, headers)
    except OSError as exc:
        logger.warning("Token request to %s failed: %s", platform, exc)
        raise error_cls(platform, f"Could not reach {platform}: {exc}", transient=True) from exc
    if not 200 <= response.status < 300:
        message = _provider_message(response)
        logger.warning("Token request to %s rejected (%s): %s", platform, response.status, message)
        raise error_cls(platform, message, status=response.status)
    try:
        data = response.json()
    except ValueError as exc:
        raise error_cls(platform, "Malformed token response", status=response.status) from exc
    if not isinstance(data, dict):
        raise error_cls(platform, "Malformed token response", status=response.status)
    return data


def _normalize(
    spec: ProviderSpec,
    data: dict[str, Any],
    now: int,
    error_cls: type[ProviderError],
    default_lifetime: bool,
) -> TokenData:
    lifetime = spec.default_lifetime_ms if default_lifetime else None
    try:
        return TokenData.from_provider(data, now, default_lifetime_ms=lifetime)
    except ValueError as exc:
        raise error_cls(spec.platform.value, str(exc)) from exc


def _provider_message(response: HttpResponse) -> str:
    """Summary: Extract the most specific error message from a provider response.

    Importance: Providers nest messages differently; users need the real reason.
    Alternatives: Show only the HTTP status code.
    """

    try:
        data = response.json()
    except ValueError:
        return response.body.strip() or f"HTTP {response.status}"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        for key in ("error_description", "error_message", "message"):
            if data.get(key):
                return str(data[key])
        if error:
            return str(error)
    return response.body.strip() or f"HTTP {response.status}"
