from typing import Callable

from phone_auth.services.tokens import create_access_token


class SessionIssuer:
    """Mints the bearer token handed out after any successful verification."""

    def __init__(self, signer: Callable[[int, str], str] = create_access_token) -> None:
        self._signer = signer

    def issue(self, user_id: int, phone: str) -> str:
        return self._signer(user_id, phone)


session_issuer = SessionIssuer()
