"""AuthProvider — static basic credentials or cached OAuth client-credentials tokens."""

from __future__ import annotations

import asyncio
import ssl
import time
from collections.abc import Callable

import httpx
import structlog

from resurrector.core.config import DirectorConfig, get_settings
from resurrector.core.types import AuthToken, AuthType, Credential, EndpointStatus
from resurrector.director.exceptions import AuthError, ConfigurationError
from resurrector.director.files import FileAccess, LocalFileAccess

logger = structlog.stdlib.get_logger()

_TOKEN_PATH = "/oauth/token"
# Assumed lifetime when the issuer omits expires_in.
_DEFAULT_TOKEN_LIFETIME_SECS = 300.0


class AuthProvider:
    """Produces authorization material for director requests.

    The auth mode comes from the latest :class:`EndpointStatus`: Basic mode
    returns the configured user/password with no network call, OAuth mode
    returns a bearer token from a client-credentials grant against the
    advertised issuer.

    Tokens are cached until ``expires_at - token_expiry_margin_secs``; the
    margin is capped at half the token lifetime so short-lived tokens are
    still reused.
    Refreshes are single-flight: concurrent callers wait on one lock and the
    cache is re-checked once it is held, so a burst of dispatches triggers
    one grant.
    """

    def __init__(
        self,
        config: DirectorConfig | None = None,
        files: FileAccess | None = None,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or get_settings().director
        self._files = files or LocalFileAccess()
        self._clock = clock
        self._http = http
        self._owns_http = http is None
        self._token: AuthToken | None = None
        self._refresh_lock = asyncio.Lock()
        self._grant_count = 0
        self._ca_data = self._load_ca_cert()

    @property
    def token(self) -> AuthToken | None:
        """Currently cached token, if any."""
        return self._token

    @property
    def grant_count(self) -> int:
        """Number of client-credentials grants performed."""
        return self._grant_count

    def _load_ca_cert(self) -> bytes | None:
        path = self._config.ca_cert
        if not path:
            return None
        if not self._files.exists(path):
            raise ConfigurationError(f"CA certificate not found: {path}")
        return self._files.read(path)

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            verify: ssl.SSLContext | bool = True
            if self._ca_data is not None:
                try:
                    verify = ssl.create_default_context(
                        cadata=self._ca_data.decode("ascii"),
                    )
                except (ssl.SSLError, ValueError) as exc:
                    raise ConfigurationError(
                        f"Invalid CA certificate {self._config.ca_cert}: {exc}"
                    ) from exc
            self._http = httpx.AsyncClient(
                verify=verify,
                timeout=httpx.Timeout(self._config.request_timeout_secs),
            )
        return self._http

    async def authorization_for(self, status: EndpointStatus) -> Credential:
        """Return credentials matching the auth mode in *status*.

        Raises:
            AuthError: OAuth issuer unreachable or grant rejected.
        """
        mode = status.auth_mode
        if mode.type == AuthType.BASIC:
            return Credential(
                mode=AuthType.BASIC,
                username=self._config.user,
                password=self._config.password,
            )

        token = await self._token_for(mode.issuer_url)
        return Credential(
            mode=AuthType.OAUTH_CLIENT_CREDENTIALS,
            auth_header=token.auth_header,
        )

    def _cached(self, issuer_url: str) -> AuthToken | None:
        token = self._token
        if token is None or token.issuer_url != issuer_url:
            return None
        if not token.valid_at(self._clock()):
            return None
        return token

    async def _token_for(self, issuer_url: str) -> AuthToken:
        token = self._cached(issuer_url)
        if token is not None:
            return token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            token = self._cached(issuer_url)
            if token is not None:
                return token
            token = await self._client_credentials_grant(issuer_url)
            self._token = token
            return token

    async def _client_credentials_grant(self, issuer_url: str) -> AuthToken:
        if not issuer_url:
            raise AuthError("Director advertised OAuth without an issuer URL")

        url = f"{issuer_url.rstrip('/')}{_TOKEN_PATH}"
        self._grant_count += 1
        try:
            response = await self._get_http().post(
                url,
                data={"grant_type": "client_credentials"},
                auth=(
                    self._config.client_id,
                    self._config.client_secret.get_secret_value(),
                ),
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AuthError(
                f"Token issuer rejected grant with {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise AuthError(f"Token issuer unreachable at {url}: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise AuthError("Token issuer returned invalid JSON") from exc

        if not isinstance(body, dict) or not body.get("access_token"):
            raise AuthError("Token issuer response has no access_token")

        access_token = str(body["access_token"])
        token_type = str(body.get("token_type") or "bearer")
        try:
            expires_in = max(float(body["expires_in"]), 0.0)
        except (KeyError, TypeError, ValueError):
            logger.warning("auth_token_without_expiry", issuer_url=issuer_url)
            expires_in = _DEFAULT_TOKEN_LIFETIME_SECS

        # Short-lived tokens refresh halfway through rather than on arrival.
        margin = min(self._config.token_expiry_margin_secs, expires_in / 2)
        issued_at = self._clock()
        token = AuthToken(
            issuer_url=issuer_url,
            bearer_value=access_token,
            auth_header=f"{token_type} {access_token}",
            expires_at=issued_at + expires_in,
            refresh_at=issued_at + expires_in - margin,
        )
        logger.info(
            "auth_token_refreshed",
            issuer_url=issuer_url,
            expires_in=expires_in,
        )
        return token

    async def close(self) -> None:
        """Close the issuer HTTP client if this provider created it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
