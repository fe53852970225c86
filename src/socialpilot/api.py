"""Summary: FastAPI application for SocialPilot.

Importance: Exposes credential setup, OAuth login/callback, status, and reset endpoints.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel

from socialpilot.app import AppServices, build_context
from socialpilot.config import AppConfig
from socialpilot.errors import (
    DecryptionError,
    NotAuthenticatedError,
    NotConfiguredError,
    ProviderError,
    UnsupportedPlatformError,
    ValidationError,
)
from socialpilot.models import Platform, PlatformCredentials
from socialpilot.oauth import HttpClient, build_auth_url, exchange_code
from socialpilot.services import Publisher
from socialpilot.storage.base import (
    SLOT_AUTH_DEBUG,
    SLOT_AUTH_ERROR,
    SLOT_CALLBACK_ERROR,
    PlatformStateStore,
)
from socialpilot.storage.cookie_store import CookieStateStore


logger = logging.getLogger(__name__)

DECRYPT_FAILED_MESSAGE = "Credentials decryption failed. Please reconnect your account."


class PublishRequest(BaseModel):
    """Summary: Request payload for publishing a post.

    Importance: Keeps publishing inputs explicit for UI clients.
    Alternatives: Accept multipart uploads with the image bytes.
    """

    text: str = ""
    image_url: str | None = None


def create_app(
    config: AppConfig,
    http: HttpClient | None = None,
    publisher: Publisher | None = None,
) -> FastAPI:
    """Summary: Create a FastAPI app wired to SocialPilot services.

    Importance: Ensures every route shares the same key, HTTP client, and state backend.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="SocialPilot API", version="0.1.0")
    context = build_context(config, http=http, publisher=publisher)
    shared_state = context.sqlite_state() if config.state_backend == "sqlite" else None

    def open_state(request: Request) -> PlatformStateStore:
        """Summary: Provide the persisted-state store for one request.

        Importance: Cookie state is request-scoped; sqlite state is shared per owner.
        Alternatives: Pick the backend inside each route.
        """

        if shared_state is not None:
            return shared_state
        return CookieStateStore(request.cookies, secure=config.is_production)

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for private deployments.
        Alternatives: Use session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def respond(state: PlatformStateStore, response: Response) -> Response:
        if isinstance(state, CookieStateStore):
            state.apply(response)
        return response

    def redirect(state: PlatformStateStore, base: str, key: str, message: str) -> Response:
        return respond(state, RedirectResponse(_with_query(base, key, message), status_code=302))

    @app.exception_handler(UnsupportedPlatformError)
    def unsupported_platform(_request: Request, exc: UnsupportedPlatformError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(RequestValidationError)
    def invalid_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected malformed request: %s", exc.errors()[:1])
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Summary: Health check endpoint.

        Importance: Supports uptime checks in local and cloud deployments.
        Alternatives: Use a metrics endpoint only.
        """

        return {"status": "ok"}

    @app.post("/auth/setup/{platform}", dependencies=[Depends(require_api_key)])
    def setup_credentials(
        platform: str, request: Request, payload: Any = Body(default=None)
    ) -> Response:
        """Summary: Validate and store developer credentials for a platform.

        Importance: Credentials drive every later login, exchange, and refresh.
        Alternatives: Configure credentials only through environment variables.
        """

        target = Platform.parse(platform)
        state = open_state(request)
        try:
            if payload is not None and not isinstance(payload, dict):
                raise ValidationError("Request body must be a JSON object")
            credentials = PlatformCredentials.from_submission(target, payload or {})
        except ValidationError as exc:
            body: dict[str, Any] = {"error": exc.message}
            if exc.tip:
                body["tip"] = exc.tip
            return JSONResponse(body, status_code=400)
        services = context.services_for_state(state)
        services.credentials.save_credentials(target, credentials)
        return respond(
            state,
            JSONResponse({"success": True, "redirect_uri": credentials.redirect_uri}),
        )

    @app.get("/auth/login/{platform}")
    def login(platform: str, request: Request) -> Response:
        """Summary: Redirect the user to the provider authorization page.

        Importance: Starts the authorization-code flow with stored credentials.
        Alternatives: Return the URL as JSON and let the client navigate.
        """

        target = Platform.parse(platform)
        state = open_state(request)
        services = context.services_for_state(state)
        try:
            credentials = services.credentials.load_credentials(target)
        except DecryptionError:
            return redirect(state, config.error_redirect, "error", DECRYPT_FAILED_MESSAGE)
        if credentials is None:
            logger.error("No credentials found for %s login.", target.value)
            return respond(
                state,
                JSONResponse(
                    {"error": "Platform credentials not found. Please set up your credentials first."},
                    status_code=400,
                ),
            )
        auth_url = build_auth_url(target, credentials)
        services.credentials.record_diagnostic(
            target,
            SLOT_AUTH_DEBUG,
            {
                "redirect_uri": credentials.redirect_uri,
                "attempted": True,
                "auth_url": auth_url[:100] + "..." if target is Platform.INSTAGRAM else None,
                "app_id_length": len(credentials.client_id),
                "has_client_secret": bool(credentials.client_secret),
            },
        )
        logger.info("Redirecting to %s authorization page.", target.value)
        return respond(state, RedirectResponse(auth_url, status_code=302))

    @app.get("/auth/callback/{platform}")
    def callback(
        platform: str,
        request: Request,
        code: str | None = None,
        error: str | None = None,
        error_description: str | None = None,
        state: str | None = None,
    ) -> Response:
        """Summary: Complete the OAuth flow and store the resulting token.

        Importance: Every outcome ends in a redirect the UI can display.
        Alternatives: Render an HTML result page directly.
        """

        target = Platform.parse(platform)
        store = open_state(request)
        services = context.services_for_state(store)
        logger.info(
            "Callback received for %s: code present=%s, error=%s",
            target.value,
            bool(code),
            error or "none",
        )
        debug_info = services.credentials.read_diagnostic(target, SLOT_AUTH_DEBUG) or {}

        if error:
            logger.error("OAuth error for %s: %s %s", target.value, error, error_description or "")
            services.credentials.record_diagnostic(
                target,
                SLOT_AUTH_ERROR,
                {"error": error, "error_description": error_description, "debug": debug_info},
            )
            services.credentials.record_diagnostic(
                target,
                SLOT_CALLBACK_ERROR,
                {
                    "error": error,
                    "error_description": error_description,
                    "params": dict(request.query_params),
                },
            )
            return redirect(store, config.error_redirect, "error", error_description or error)
        if not code:
            logger.error("No authorization code provided for %s.", target.value)
            return redirect(store, config.error_redirect, "error", "No authorization code received")
        if state is not None and state != target.value:
            services.credentials.record_diagnostic(
                target,
                SLOT_CALLBACK_ERROR,
                {"error": "state_mismatch", "params": dict(request.query_params)},
            )
            return redirect(store, config.error_redirect, "error", "Invalid OAuth state")

        try:
            credentials = services.credentials.load_credentials(target)
        except DecryptionError:
            return redirect(store, config.error_redirect, "error", DECRYPT_FAILED_MESSAGE)
        if credentials is None:
            logger.error("No credentials found for %s during callback.", target.value)
            return redirect(
                store,
                config.error_redirect,
                "error",
                "Credentials not found. Please try connecting again.",
            )

        try:
            token = exchange_code(target, code, credentials, services.http)
        except ProviderError as exc:
            logger.error("Error exchanging code for %s token: %s", target.value, exc.message)
            services.credentials.record_diagnostic(
                target,
                SLOT_AUTH_ERROR,
                {
                    "error": exc.message,
                    "status": exc.status,
                    "transient": exc.transient,
                    "debug": debug_info,
                },
            )
            return redirect(
                store,
                config.error_redirect,
                "error",
                f"Failed to authenticate with {target.value}: {exc.message}",
            )
        services.credentials.save_token(target, token)
        services.credentials.mark_auth_success(target)
        logger.info("Successfully authenticated with %s.", target.value)
        return redirect(
            store, config.success_redirect, "success", f"Connected {target.value} successfully"
        )

    @app.get("/auth/status/{platform}", dependencies=[Depends(require_api_key)])
    def status(platform: str, request: Request) -> Response:
        target = Platform.parse(platform)
        state = open_state(request)
        services = context.services_for_state(state)
        return respond(state, JSONResponse(services.tokens.token_status(target).as_dict()))

    @app.get("/auth/credentials/{platform}", dependencies=[Depends(require_api_key)])
    def has_credentials(platform: str, request: Request) -> dict[str, bool]:
        target = Platform.parse(platform)
        services = context.services_for_state(open_state(request))
        return {"hasCredentials": services.credentials.has_credentials(target)}

    @app.post("/auth/logout/{platform}", dependencies=[Depends(require_api_key)])
    def logout(platform: str, request: Request) -> Response:
        """Summary: Forget the stored token but keep credentials.

        Importance: Lets users reconnect without re-entering app credentials.
        Alternatives: Reset everything on logout.
        """

        target = Platform.parse(platform)
        state = open_state(request)
        context.services_for_state(state).credentials.clear_token(target)
        return respond(state, JSONResponse({"success": True}))

    @app.post("/auth/reset/{platform}", dependencies=[Depends(require_api_key)])
    def reset(platform: str, request: Request) -> Response:
        target = Platform.parse(platform)
        state = open_state(request)
        result = context.services_for_state(state).diagnostics.reset(target)
        return respond(state, JSONResponse(result))

    @app.get("/auth/debug/{platform}", dependencies=[Depends(require_api_key)])
    def debug(platform: str, request: Request) -> Response:
        """Summary: Return a non-secret diagnostic snapshot for a platform.

        Importance: Helps operators troubleshoot failed connections.
        Alternatives: Inspect server logs only.
        """

        target = Platform.parse(platform)
        state = open_state(request)
        snapshot = context.services_for_state(state).diagnostics.snapshot(target)
        return respond(state, JSONResponse(snapshot))

    @app.post("/publish/{platform}", dependencies=[Depends(require_api_key)])
    def publish(platform: str, payload: PublishRequest, request: Request) -> Response:
        """Summary: Publish a post using a token from the access token resolver.

        Importance: Publishing never reads stored tokens directly.
        Alternatives: Let clients send access tokens with the request.
        """

        target = Platform.parse(platform)
        state = open_state(request)
        services: AppServices = context.services_for_state(state)
        if services.publishing is None:
            return JSONResponse(
                {"success": False, "error": "Publishing is not configured"}, status_code=501
            )
        try:
            post_id = services.publishing.publish(target, payload.text, payload.image_url)
        except NotConfiguredError as exc:
            return respond(state, _failure(str(exc), 400))
        except NotAuthenticatedError as exc:
            return respond(state, _failure(str(exc), 401))
        except ValueError as exc:
            return respond(state, _failure(str(exc), 400))
        except ProviderError as exc:
            logger.error("Error publishing to %s: %s", target.value, exc.message)
            return respond(state, _failure(exc.message, 502))
        return respond(
            state,
            JSONResponse(
                {
                    "success": True,
                    "postId": post_id,
                    "message": f"Successfully published to {target.value}",
                }
            ),
        )

    return app


def app_factory() -> FastAPI:
    """Build the app from environment configuration (uvicorn --factory)."""

    return create_app(AppConfig.from_env())


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _with_query(base: str, key: str, value: str) -> str:
    parts = urlsplit(base)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append((key, value))
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(query), parts.fragment))
