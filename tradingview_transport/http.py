"""HTTP credential exchange for TradingView user sessions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Protocol
from urllib.parse import urljoin

import aiohttp

from .config import DEFAULT_LOCATION
from .errors import (
    TradingViewConnectionError,
    TradingViewCredentialError,
    TradingViewResponseError,
    TradingViewTimeout,
)

MAX_REDIRECTS: Final = 5

_AUTH_TOKEN_RE = re.compile(r'"auth_token":"(.*?)"')
_USER_ID_RE = re.compile(r'"id":([0-9]{1,10}),')
_USERNAME_RE = re.compile(r'"username":"(.*?)"')


@dataclass(frozen=True)
class TradingViewUser:
    """User details scraped from an authenticated page."""

    auth_token: str
    user_id: int | None = None
    username: str | None = None


class CredentialProvider(Protocol):
    """Turns a session token into a socket auth token."""

    async def fetch_user(
        self, token: str, signature: str = "", location: str = DEFAULT_LOCATION
    ) -> TradingViewUser: ...


def build_auth_cookies(token: str, signature: str = "") -> str:
    """Build the cookie header carrying the session token."""
    if not signature:
        return f"sessionid={token}"
    return f"sessionid={token};sessionid_sign={signature}"


class TradingViewHttpClient:
    """HTTP client wrapper for the credential exchange."""

    def __init__(self, session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._session = session
        self._timeout = timeout

    async def fetch_user(
        self, token: str, signature: str = "", location: str = DEFAULT_LOCATION
    ) -> TradingViewUser:
        """Fetch the user behind a session token.

        Redirects are followed manually so the cookie header is re-sent to
        every hop.

        Raises:
            TradingViewCredentialError: If the token is wrong or expired, or the
                user page cannot be decoded
            TradingViewResponseError: If the server answers with an error status
            TradingViewTimeout: If the request times out
            TradingViewConnectionError: If the network request fails
        """
        headers = {"Cookie": build_auth_cookies(token, signature)}
        url = location

        for _ in range(MAX_REDIRECTS + 1):
            try:
                async with self._session.get(
                    url,
                    headers=headers,
                    allow_redirects=False,
                    timeout=aiohttp.ClientTimeout(total=self._timeout),
                ) as resp:
                    if resp.status >= 400:
                        raise TradingViewResponseError(
                            resp.status, "Credential exchange failed with error response"
                        )
                    body = await resp.text()
                    redirect = resp.headers.get("Location")
            except TimeoutError as err:
                raise TradingViewTimeout("Credential exchange timed out") from err
            except aiohttp.ClientError as err:
                raise TradingViewConnectionError("Credential exchange failed") from err
            except ValueError as err:
                raise TradingViewCredentialError("Unreadable user page") from err

            if "auth_token" in body:
                return _parse_user(body)

            if not redirect:
                break
            next_url = urljoin(url, redirect)
            if next_url == url:
                break
            url = next_url

        raise TradingViewCredentialError("Wrong or expired sessionid/signature")


def _parse_user(body: str) -> TradingViewUser:
    auth_token = _AUTH_TOKEN_RE.search(body)
    if auth_token is None or not auth_token.group(1):
        raise TradingViewCredentialError("Auth token missing from user page")

    user_id = _USER_ID_RE.search(body)
    username = _USERNAME_RE.search(body)
    return TradingViewUser(
        auth_token=auth_token.group(1),
        user_id=int(user_id.group(1)) if user_id else None,
        username=username.group(1) if username else None,
    )
