import logging
from http.cookies import CookieError, SimpleCookie
from typing import Optional

import azure.functions as func

from auth.token import TokenService

COOKIE_NAME = "cartmate_token"

logger = logging.getLogger(__name__)


class SessionCookies:
    """Carries the session token in an HttpOnly cookie."""

    def __init__(self, tokens: TokenService, secure: bool = False, name: str = COOKIE_NAME):
        self.tokens = tokens
        self.secure = secure
        self.name = name

    def _render(self, value: str, max_age: int) -> str:
        jar = SimpleCookie()
        jar[self.name] = value
        morsel = jar[self.name]
        morsel["httponly"] = True
        morsel["samesite"] = "Lax"
        morsel["path"] = "/"
        morsel["max-age"] = max_age
        if self.secure:
            morsel["secure"] = True
        return morsel.OutputString()

    def set_session_cookie(self, token: str) -> str:
        """Set-Cookie header value binding `token` to the browser session."""
        return self._render(token, self.tokens.ttl_seconds)

    def clear_session_cookie(self) -> str:
        return self._render("", 0)

    def get_session_cookie(self, req: func.HttpRequest) -> Optional[str]:
        raw = req.headers.get("Cookie") or req.headers.get("cookie")
        if not raw:
            return None
        # one fragment at a time: SimpleCookie drops the whole header when
        # any sibling cookie is malformed
        for fragment in raw.split(";"):
            key, sep, value = fragment.partition("=")
            if not sep or key.strip() != self.name:
                continue
            jar = SimpleCookie()
            try:
                jar.load(fragment.strip())
            except CookieError:
                logger.warning("Ignoring malformed session cookie")
                return None
            morsel = jar.get(self.name)
            return morsel.value if morsel and morsel.value else None
        return None

    def get_current_caller(self, req: func.HttpRequest) -> Optional[dict]:
        token = self.get_session_cookie(req)
        if not token:
            return None
        return self.tokens.verify(token)

    @staticmethod
    def attach(response: func.HttpResponse, header_value: str) -> func.HttpResponse:
        response.headers["Set-Cookie"] = header_value
        return response
