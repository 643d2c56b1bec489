from typing import Protocol

from costsheet.errors import AuthenticationError


class TokenProvider(Protocol):
    """
    TokenProvider supplies the bearer token sent with every
    consumption API request.
    """

    def get_token(self) -> "str": ...


class StaticTokenProvider:
    """
    StaticTokenProvider hands out a token obtained elsewhere, e.g.
    `az account get-access-token` exported into the environment.
    """

    def __init__(self, token: "str") -> "None":
        self._token = token.strip()

    def get_token(self) -> "str":
        if not self._token:
            raise AuthenticationError(
                "no access token configured, set COSTSHEET_ACCESS_TOKEN"
            )
        return self._token
