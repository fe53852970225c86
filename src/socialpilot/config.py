"""Summary: Application configuration for SocialPilot.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for storage, encryption, and redirects.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    db_path: str
    state_backend: str
    state_owner: str
    encryption_key: str | None
    encryption_key_path: str
    environment: str
    api_host: str
    api_port: int
    api_key: str
    success_redirect: str
    error_redirect: str
    http_timeout_seconds: float
    credentials_ttl_days: int
    token_ttl_days: int

    @property
    def is_production(self) -> bool:
        """Summary: Report whether the deployment runs in production mode.

        Importance: Controls secure-only cookies.
        Alternatives: Expose a dedicated cookie_secure flag.
        """

        return self.environment == "production"

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        state_backend = os.getenv("SOCIALPILOT_STATE_BACKEND", defaults["state_backend"])
        if state_backend not in {"cookie", "sqlite"}:
            raise ValueError(f"Unknown state backend: {state_backend}")
        return AppConfig(
            db_path=os.getenv("SOCIALPILOT_DB_PATH", defaults["db_path"]),
            state_backend=state_backend,
            state_owner=os.getenv("SOCIALPILOT_STATE_OWNER", defaults["state_owner"]),
            encryption_key=os.getenv("ENCRYPTION_KEY") or defaults["encryption_key"] or None,
            encryption_key_path=os.getenv(
                "SOCIALPILOT_ENCRYPTION_KEY_PATH", defaults["encryption_key_path"]
            ),
            environment=os.getenv("SOCIALPILOT_ENVIRONMENT", defaults["environment"]),
            api_host=os.getenv("SOCIALPILOT_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("SOCIALPILOT_API_PORT", defaults["api_port"])),
            api_key=os.getenv("SOCIALPILOT_API_KEY", defaults["api_key"]),
            success_redirect=os.getenv(
                "SOCIALPILOT_SUCCESS_REDIRECT", defaults["success_redirect"]
            ),
            error_redirect=os.getenv("SOCIALPILOT_ERROR_REDIRECT", defaults["error_redirect"]),
            http_timeout_seconds=float(
                os.getenv("SOCIALPILOT_HTTP_TIMEOUT", defaults["http_timeout_seconds"])
            ),
            credentials_ttl_days=int(
                os.getenv("SOCIALPILOT_CREDENTIALS_TTL_DAYS", defaults["credentials_ttl_days"])
            ),
            token_ttl_days=int(
                os.getenv("SOCIALPILOT_TOKEN_TTL_DAYS", defaults["token_ttl_days"])
            ),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())
