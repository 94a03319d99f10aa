"""Administrator identity checks backed by Google's tokeninfo endpoint."""

import logging
from typing import Any, Mapping, Optional, Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
ID_TOKEN_COOKIE = "id_token"


class AdminRequest(Protocol):
    """Anything carrying request cookies, e.g. a Starlette Request."""

    cookies: Mapping[str, str]


class IdentityVerifier(Protocol):
    async def is_admin(self, request: AdminRequest) -> bool:
        ...


class GoogleIdentityVerifier:
    """Decides whether a request comes from a configured administrator.

    The browser stores a Google Sign-In ID token in the ``id_token`` cookie.
    The token is validated remotely, then its audience must match our OAuth
    client id and its email must be in the admin list.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        client_id: Optional[str],
        admins: Sequence[str],
        timeout_seconds: float = 30.0,
    ):
        self._client = client
        self._client_id = client_id
        self._admins = frozenset(admins)
        self._timeout = timeout_seconds

    async def is_admin(self, request: AdminRequest) -> bool:
        if not self._client_id or not self._admins:
            logger.info("No OAuth client id or admins configured.")
            return False

        id_token = request.cookies.get(ID_TOKEN_COOKIE)
        if not id_token:
            logger.info("No cookie supplied.")
            return False

        try:
            response = await self._client.get(
                TOKENINFO_URL,
                params={"id_token": id_token},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.info(f"Failed to validate id token: {e}")
            return False

        if response.status_code != 200:
            logger.info(f"Failed to validate id token: status {response.status_code}")
            return False

        try:
            claims: Mapping[str, Any] = response.json()
        except ValueError as e:
            logger.info(f"Failed to decode claims: {e}")
            return False

        if claims.get("aud") != self._client_id:
            logger.info("Wrong audience.")
            return False

        email = claims.get("email", "")
        if email in self._admins:
            return True

        logger.info(f"{email!r} is not an administrator.")
        return False
