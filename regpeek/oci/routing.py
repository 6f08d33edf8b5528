import logging
from dataclasses import dataclass

import httpx

from regpeek.config import Config
from regpeek.oci.errors import RoutingConfigError
from regpeek.oci.reference import DEFAULT_DOMAIN

logger = logging.getLogger(__name__)

DOCKER_HUB = "registry-1.docker.io"
LOCAL_HOSTS = ("localhost", "127.0.0.1", "[::1]")


@dataclass(slots=True)
class RegistryHost:
    """Where and how to connect for a registry host"""

    host: str
    scheme: str = "https"
    verify: bool = False
    username: str | None = None
    password: str | None = None

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"


def _scheme_for(host: str) -> str:
    hostname = host.rsplit(":", 1)[0] if not host.endswith("]") else host
    return "http" if hostname in LOCAL_HOSTS else "https"


class HostRouting:
    """Decide which endpoint to contact for a registry host.

    The same credentials are handed out for every host, the inspection only
    ever talks to the registry the reference points at.
    TLS certificates are not verified unless asked for, this is a best-effort
    check against registries that are often self-signed.
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        proxy: str | None = None,
        verify: bool = False,
    ):
        self.username = username
        self.password = password
        self.proxy = proxy
        self.verify = verify

    @classmethod
    def from_config(
        cls,
        config: Config,
        username: str | None = None,
        password: str | None = None,
    ) -> "HostRouting":
        return cls(
            username=username, password=password, proxy=config.DOCKERHUB_PUBLIC_PROXY
        )

    def proxy_host(self) -> str:
        """Return the `host[:port]` of the configured Docker Hub proxy"""
        try:
            url = httpx.URL(self.proxy)
        except httpx.InvalidURL as e:
            raise RoutingConfigError(f"Invalid proxy URL {self.proxy!r}: {e}") from e
        host = url.netloc.decode("ascii")
        if not url.host:
            raise RoutingConfigError(f"Proxy URL {self.proxy!r} has no host")
        return host

    def route(self, host: str) -> RegistryHost:
        physical = host
        if host == DEFAULT_DOMAIN:
            if self.proxy:
                # Only the host is taken from the proxy URL, not its scheme
                physical = self.proxy_host()
                logger.debug("Routing %s through proxy %s", host, physical)
            else:
                physical = DOCKER_HUB
        return RegistryHost(
            host=physical,
            scheme=_scheme_for(host),
            verify=self.verify,
            username=self.username,
            password=self.password,
        )
