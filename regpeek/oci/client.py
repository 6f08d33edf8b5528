from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterator

import httpx

from regpeek.config import DEFAULT_TIMEOUT
from regpeek.oci.errors import AuthenticationError
from regpeek.oci.routing import RegistryHost

logger = logging.getLogger(__name__)

_AUTH_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')


def _parse_www_auth(www_authenticate: str) -> tuple[str, dict[str, str]]:
    """Parse the WWW-Authenticate header into the scheme and its parameters"""
    scheme, _, params = www_authenticate.strip().partition(" ")
    return scheme.lower(), dict(_AUTH_PARAM_RE.findall(params))


class BearerAuth(httpx.Auth):
    """Attaches HTTP Bearer Authentication to the given Request object."""

    def __init__(self, token: str):
        self.token = token

    def auth_flow(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


class Client:
    """Read-only client for the OCI registry API of a single host."""

    def __init__(
        self,
        host: RegistryHost,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.host = host
        self.registry_url = host.base_url
        self.timeout = timeout
        self.transport = transport
        self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def session(self) -> httpx.Client:
        if self._session is None:
            self._session = httpx.Client(
                verify=self.host.verify,
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
                max_redirects=5,
            )
        return self._session

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def request(self, method: str, uri: str, **kwargs) -> httpx.Response:
        """Send a request, answering an authentication challenge once"""
        url = f"{self.registry_url}{uri}"
        response = self.session.request(method, url, **kwargs)
        if response.status_code == 401 and self.authenticate(response):
            response = self.session.request(method, url, **kwargs)
        return response

    def head(self, uri, **kwargs):
        return self.request("HEAD", uri, **kwargs)

    def get(self, uri, **kwargs):
        return self.request("GET", uri, **kwargs)

    @contextmanager
    def stream(self, method: str, uri: str, **kwargs) -> Iterator[httpx.Response]:
        """Stream a response, the response is closed when the context exits"""
        url = f"{self.registry_url}{uri}"
        with self.session.stream(method, url, **kwargs) as response:
            if response.status_code != 401 or not self.authenticate(response):
                yield response
                return
        with self.session.stream(method, url, **kwargs) as response:
            yield response

    def authenticate(self, response: httpx.Response) -> bool:
        """Answer the challenge of a 401 response.

        Returns True when the session credentials changed and
        the request is worth retrying.
        """
        www_authenticate = response.headers.get("WWW-Authenticate")
        if not www_authenticate:
            return False
        scheme, params = _parse_www_auth(www_authenticate)
        logger.debug("Authentication challenge: %s %s", scheme, params)
        if scheme == "bearer" and "realm" in params:
            self.authenticate_token(
                token_url=params["realm"],
                service=params.get("service"),
                scope=params.get("scope"),
            )
            return True
        if scheme == "basic":
            if not self.host.username and not self.host.password:
                raise AuthenticationError(
                    f"{self.registry_url} requires authentication, "
                    f"provide a username and/or password."
                )
            if isinstance(self.session.auth, httpx.BasicAuth):
                # Credentials were already sent and rejected
                return False
            self.session.auth = httpx.BasicAuth(
                self.host.username or "", self.host.password or ""
            )
            return True
        return False

    def authenticate_token(self, token_url, service, scope):
        """Use the token api to get a token, with basic authentication if we have credentials

        ref: https://distribution.github.io/distribution/spec/auth/token/
        """
        params = {}
        if service:
            params["service"] = service
        if scope:
            params["scope"] = scope
        auth = None
        if self.host.username or self.host.password:
            params["client_id"] = self.host.username or ""
            auth = (self.host.username or "", self.host.password or "")
        try:
            response = self.session.get(token_url, params=params, auth=auth)
        except httpx.InvalidURL as e:
            raise AuthenticationError(f"Invalid token realm {token_url!r}: {e}") from e
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Token request to {token_url} was refused: {response.status_code}"
            )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Invalid token response from {token_url}") from e
        token = None
        if isinstance(payload, dict):
            token = payload.get("token") or payload.get("access_token")
        if not token:
            raise AuthenticationError(f"No token in response from {token_url}")
        self.session.auth = BearerAuth(token)
