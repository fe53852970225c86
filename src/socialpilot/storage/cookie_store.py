"""Summary: Cookie-backed per-platform state for browser clients.

Importance: Keeps each browser's credentials and tokens with that browser.
Alternatives: Store state server-side keyed by a session identifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from fastapi.responses import Response


@dataclass(frozen=True)
class _PendingCookie:
    value: str
    max_age: int
    http_only: bool


class CookieStateStore:
    """Summary: Request-scoped PlatformStateStore over HTTP cookies.

    Importance: Reads the incoming cookies and buffers writes until the response exists.
    Alternatives: Set cookies directly inside each route handler.
    """

    def __init__(self, cookies: Mapping[str, str], secure: bool = False) -> None:
        self._incoming = dict(cookies)
        self._secure = secure
        self._pending: dict[str, _PendingCookie | None] = {}

    def get(self, key: str) -> str | None:
        if key in self._pending:
            pending = self._pending[key]
            return pending.value if pending else None
        value = self._incoming.get(key)
        return value or None

    def set(self, key: str, value: str, max_age_seconds: int, http_only: bool = True) -> None:
        if max_age_seconds <= 0:
            self.delete(key)
            return
        self._pending[key] = _PendingCookie(value=value, max_age=max_age_seconds, http_only=http_only)

    def delete(self, key: str) -> None:
        self._pending[key] = None

    def keys(self) -> list[str]:
        present = {key for key, value in self._incoming.items() if value}
        for key, pending in self._pending.items():
            if pending is None:
                present.discard(key)
            else:
                present.add(key)
        return sorted(present)

    def apply(self, response: Response) -> Response:
        """Summary: Write buffered changes to the response as Set-Cookie headers.

        Importance: Makes every state change of the request reach the browser.
        Alternatives: Return cookie instructions alongside the payload.
        """

        for key, pending in self._pending.items():
            if pending is None:
                response.delete_cookie(key, path="/")
                continue
            response.set_cookie(
                key,
                pending.value,
                max_age=pending.max_age,
                path="/",
                httponly=pending.http_only,
                secure=self._secure,
                samesite="lax",
            )
        return response
