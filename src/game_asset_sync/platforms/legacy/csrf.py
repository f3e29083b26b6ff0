"""CSRF token cache shared by all requests of one legacy client."""


class CsrfTokenCache:
    """Cell holding the current X-CSRF-Token.

    All requests of a client run on one event loop and the token is replaced
    by a single assignment that never spans an await, so a reader sees
    either the old or the new value. Concurrent refreshes resolve
    last-writer-wins.
    """

    def __init__(self, token: str | None = None):
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token
